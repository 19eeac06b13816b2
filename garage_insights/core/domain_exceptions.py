"""Domain exception hierarchy for the insight engine."""

from garage_insights.core.error_codes import ErrorCode


class DomainException(Exception):
    code: str = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class RecordNotFoundError(DomainException):
    code = ErrorCode.NOT_FOUND


class ToolExecutionError(DomainException):
    """A single tool call failed. Reported back to the model, never fatal."""

    code = ErrorCode.TOOL_EXECUTION_ERROR


class ToolValidationError(ToolExecutionError):
    code = ErrorCode.VALIDATION_ERROR


class ModelInvocationError(DomainException):
    """The reasoning service could not be reached or answered unusably."""

    code = ErrorCode.MODEL_INVOCATION_ERROR


class IterationBudgetExceeded(DomainException):
    code = ErrorCode.ITERATION_BUDGET_EXCEEDED


class AgentAlreadyRunningError(DomainException):
    code = ErrorCode.AGENT_ALREADY_RUNNING

    def __init__(self, message: str = "An agent is already running"):
        super().__init__(message)


class UnknownAgentError(DomainException):
    code = ErrorCode.UNKNOWN_AGENT
