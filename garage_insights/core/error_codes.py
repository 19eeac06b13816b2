class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    TOOL_EXECUTION_ERROR = "TOOL_EXECUTION_ERROR"
    MODEL_INVOCATION_ERROR = "MODEL_INVOCATION_ERROR"
    ITERATION_BUDGET_EXCEEDED = "ITERATION_BUDGET_EXCEEDED"
    AGENT_ALREADY_RUNNING = "AGENT_ALREADY_RUNNING"
    UNKNOWN_AGENT = "UNKNOWN_AGENT"
    AGENT_RUN_FAILED = "AGENT_RUN_FAILED"
