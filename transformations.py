"""
Pool transformation routines.

A transformation routine is a callable ``routine(worksheet) -> None`` that
formats a populated template worksheet in place. Routines are resolved by
name, in order:

1. names registered on a ``TransformationRegistry``,
2. a function of that name in the Python module sitting next to the template
   (``templates/LP_Template.py`` for ``templates/LP_Template.xlsx``),
3. a dotted import path such as ``pool_formats.standard:format_pool``.
"""
import importlib
import importlib.util
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from openpyxl.worksheet.worksheet import Worksheet

from errors import TransformationError

logger = logging.getLogger(__name__)

TransformationRoutine = Callable[[Worksheet], None]


class TransformationRegistry:
    """Named transformation routines available to the pipeline."""

    def __init__(self):
        self._routines: Dict[str, TransformationRoutine] = {}

    def register(self, name: str) -> Callable[[TransformationRoutine], TransformationRoutine]:
        """Decorator registering a routine under ``name``."""
        def decorator(fn: TransformationRoutine) -> TransformationRoutine:
            self.add(name, fn)
            return fn
        return decorator

    def add(self, name: str, fn: TransformationRoutine) -> None:
        if not callable(fn):
            raise TypeError(f"Transformation '{name}' is not callable")
        if name in self._routines:
            logger.warning(f"Replacing transformation routine {name}")
        self._routines[name] = fn

    def unregister(self, name: str) -> None:
        self._routines.pop(name, None)

    def names(self):
        return sorted(self._routines)

    def resolve(self, name: str, template_path: Optional[Path] = None) -> TransformationRoutine:
        """
        Find the routine called ``name``.

        Args:
            name: Routine name from the rule table
            template_path: Template the rule points at, used to find its companion module

        Returns:
            The routine

        Raises:
            TransformationError: If no routine of that name can be found
        """
        if name in self._routines:
            return self._routines[name]

        if template_path is not None:
            companion = Path(template_path).with_suffix(".py")
            if companion.exists():
                routine = getattr(_load_module_from_path(name, companion), name, None)
                if callable(routine):
                    return routine

        if ":" in name:
            module_name, _, attr = name.partition(":")
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                raise TransformationError(name, f"cannot import {module_name}: {str(e)}") from e
            routine = getattr(module, attr, None)
            if callable(routine):
                return routine

        raise TransformationError(name, "routine not found")


def _load_module_from_path(routine_name: str, module_path: Path) -> Any:
    spec = importlib.util.spec_from_file_location(f"pool_template_{module_path.stem}", str(module_path))
    if spec is None or spec.loader is None:
        raise TransformationError(routine_name, f"cannot load template module {module_path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise TransformationError(routine_name, f"template module {module_path.name} failed to load: {str(e)}") from e
    return module


def invoke_transformation(routine_name: str, routine: TransformationRoutine, ws: Worksheet) -> None:
    """
    Run a transformation routine against the populated template.

    Raises:
        TransformationError: Wrapping whatever the routine raised
    """
    logger.info(f"Running transformation {routine_name} on sheet {ws.title}")
    try:
        routine(ws)
    except TransformationError:
        raise
    except Exception as e:
        raise TransformationError(routine_name, f"{type(e).__name__}: {str(e)}") from e


registry = TransformationRegistry()


@registry.register("identity")
def identity(ws: Worksheet) -> None:
    """Leave the template as populated, for pools whose template already carries its formulas."""
