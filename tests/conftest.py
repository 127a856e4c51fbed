from dataclasses import dataclass, field

import pytest


# ---------------------------------------------------------------------------
# Callback recorder
# ---------------------------------------------------------------------------

@dataclass
class CallbackRecorder:
    """Collects everything the reader reports through its callbacks."""

    progress: list[str] = field(default_factory=list)
    tool_names: list[str] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)

    def on_progress(self, chunk: str) -> None:
        self.progress.append(chunk)

    def on_tool_calls(self, name: str) -> None:
        self.tool_names.append(name)

    def on_error(self, error: BaseException) -> None:
        self.errors.append(error)

    @property
    def callbacks(self) -> dict:
        return {
            "on_progress": self.on_progress,
            "on_tool_calls": self.on_tool_calls,
            "on_error": self.on_error,
        }


@pytest.fixture
def recorder():
    return CallbackRecorder()
