from typing import Generic, TypeVar, Optional, Callable, Any, Dict

T = TypeVar('T')  # Generic type variable
U = TypeVar('U')  # Additional type variable for map operations


class Result(Generic[T]):
    """
    A generic result class that represents the outcome of a pipeline stage.

    A stage either succeeds with data, fails with an error message, or asks
    the caller to skip the current file. Skips and failures both carry a
    ``reason`` code so that the orchestrator can record why a file stopped.

    Attributes:
        success (bool): Indicates if the stage was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Human readable message (only present when success is False)
        reason (Optional[str]): Machine readable reason code for skips and failures
        skipped (bool): True when the stage decided the file should be skipped
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        reason: Optional[str] = None,
        skipped: bool = False
    ):
        self.success = success
        self.data = data
        self.error = error
        self.reason = reason
        self.skipped = skipped

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result

        Returns:
            Result[T]: A successful Result containing the provided data
        """
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, reason: Optional[str] = None) -> "Result[T]":
        """
        Create a failed Result with the provided error message.

        Args:
            error (str): The error message describing the failure
            reason (Optional[str], optional): Reason code. Defaults to None.

        Returns:
            Result[T]: A failed Result containing the error message
        """
        return cls(success=False, error=error, reason=reason)

    @classmethod
    def skip(cls, reason: str, error: Optional[str] = None) -> "Result[T]":
        """
        Create a Result telling the caller to skip the current file.

        A skip is not an error: the file is left where it is and the run goes on.

        Args:
            reason (str): Reason code, e.g. ``no_rule``
            error (Optional[str], optional): Message for the logs. Defaults to the reason.

        Returns:
            Result[T]: A non-successful Result flagged as skipped
        """
        return cls(success=False, error=error or reason, reason=reason, skipped=True)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def is_skipped(self) -> bool:
        return self.skipped

    def unwrap(self, default: Optional[T] = None) -> Optional[T]:
        """
        Safely access the data value with an optional default value.

        Args:
            default (Optional[T], optional): Value to return if the Result is not a success.

        Returns:
            Optional[T]: The data value if successful, otherwise the default value
        """
        return self.data if self.is_success() else default

    def unwrap_or_raise(self) -> T:
        """
        Get the data value or raise an exception if the Result is not a success.

        Raises:
            ValueError: If the Result is a failure or a skip, with the error message

        Returns:
            T: The data value
        """
        if not self.is_success():
            raise ValueError(self.error or "Operation failed")
        return self.data  # type: ignore

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """
        Apply a function to the data if the Result is successful.

        Skips and failures are passed through untouched, keeping their reason.
        """
        if self.is_success():
            return Result.ok(fn(self.data))  # type: ignore
        return Result(
            success=False, error=self.error, reason=self.reason, skipped=self.skipped
        )

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain stages that return Result objects.

        If this Result is not a success it short-circuits, otherwise the
        function is applied to the data and its Result is returned.

        Args:
            fn (Callable[[T], Result[U]]): Next stage, taking the success data

        Returns:
            Result[U]: Either this Result's skip/failure or the next stage's Result
        """
        if not self.is_success():
            return Result(
                success=False, error=self.error, reason=self.reason, skipped=self.skipped
            )
        return fn(self.data)  # type: ignore

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert Result to a dictionary suitable for API responses and logs.

        Returns:
            Dict[str, Any]: Dictionary containing success flag and data or error/reason
        """
        response: Dict[str, Any] = {"success": self.success}

        if self.is_success():
            response["data"] = self.data
        else:
            response["error"] = self.error
            response["reason"] = self.reason
            response["skipped"] = self.skipped

        return response

    def __str__(self) -> str:
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success: {data_repr}"
        label = "Skipped" if self.skipped else "Failure"
        return f"{label} ({self.reason}): {self.error}"

    def __repr__(self) -> str:
        return (
            f"Result(success={self.success}, skipped={self.skipped}, "
            f"reason={self.reason!r}, data={self.data!r}, error={self.error!r})"
        )
