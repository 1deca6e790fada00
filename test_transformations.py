import pytest
from openpyxl import Workbook

from errors import TransformationError
from transformations import TransformationRegistry, invoke_transformation, registry


class TestTransformationRegistry:
    """
    Tests for routine resolution.
    """

    def test_registered_routine_is_resolved(self):
        test_registry = TransformationRegistry()

        @test_registry.register("stamp")
        def stamp(ws):
            ws["A1"] = "stamped"

        assert test_registry.resolve("stamp") is stamp
        assert test_registry.names() == ["stamp"]

    def test_companion_module_next_to_template(self, tmp_path):
        template = tmp_path / "LP_Template.xlsx"
        template.write_bytes(b"")
        (tmp_path / "LP_Template.py").write_text(
            "def format_pool(ws):\n    ws['A1'] = 'from template module'\n"
        )

        routine = TransformationRegistry().resolve("format_pool", template)

        ws = Workbook().active
        routine(ws)
        assert ws["A1"].value == "from template module"

    def test_dotted_import_path(self):
        routine = TransformationRegistry().resolve("transformations:identity")

        assert routine is registry.resolve("identity")

    def test_unknown_routine_raises(self, tmp_path):
        with pytest.raises(TransformationError, match="routine not found"):
            TransformationRegistry().resolve("missing", tmp_path / "LP_Template.xlsx")

    def test_unimportable_module_raises(self):
        with pytest.raises(TransformationError, match="cannot import"):
            TransformationRegistry().resolve("no_such_module_here:fmt")

    def test_broken_companion_module_raises(self, tmp_path):
        template = tmp_path / "Broken.xlsx"
        (tmp_path / "Broken.py").write_text("raise RuntimeError('bad template')\n")

        with pytest.raises(TransformationError, match="failed to load"):
            TransformationRegistry().resolve("fmt", template)

    def test_unregister(self):
        test_registry = TransformationRegistry()
        test_registry.add("tmp", lambda ws: None)

        test_registry.unregister("tmp")

        with pytest.raises(TransformationError):
            test_registry.resolve("tmp")


class TestInvokeTransformation:
    """
    Tests for invoke_transformation.
    """

    def test_routine_edits_sheet_in_place(self):
        ws = Workbook().active

        invoke_transformation("fill", lambda sheet: sheet.cell(row=2, column=1, value=1), ws)

        assert ws["A2"].value == 1

    def test_routine_errors_are_wrapped(self):
        def explode(ws):
            raise KeyError("Balance")

        with pytest.raises(TransformationError) as excinfo:
            invoke_transformation("explode", explode, Workbook().active)

        assert excinfo.value.routine_name == "explode"
        assert "KeyError" in str(excinfo.value)
