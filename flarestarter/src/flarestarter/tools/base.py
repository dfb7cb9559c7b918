import logging
from functools import wraps
from typing import Any, Awaitable, Callable

from langchain_core.tools import BaseTool as LangChainBaseTool
from pydantic import ConfigDict, Field

logger = logging.getLogger(__name__)

CommandHandler = Callable[..., Awaitable[str]]


class FlareBaseTool(LangChainBaseTool):
    """Base class for flarestarter tools.

    Tools take a single space-separated command string and return a
    human-readable result. Every tool is async only.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(description="The unique name of the tool")
    description: str = Field(description="Commands the tool accepts, with an example")

    async def _arun(self, command: str) -> str:
        raise NotImplementedError(f"{self.name} does not handle commands")

    def _run(self, *args: Any, **kwargs: Any) -> str:
        raise NotImplementedError(f"{self.name} only supports async operations. Use arun() instead.")


def handle_command_errors(label: str) -> Callable[[CommandHandler], CommandHandler]:
    """Turn exceptions raised by a command handler into "<label> error: ..." results"""
    def decorator(func: CommandHandler) -> CommandHandler:
        @wraps(func)
        async def wrapper(self, command: str, *args: Any, **kwargs: Any) -> str:
            try:
                return await func(self, command, *args, **kwargs)
            except Exception as e:
                logger.debug(f"{self.name} command {command!r} failed: {e}")
                return f"{label} error: {str(e)}"
        return wrapper
    return decorator
