import logging
import os

from pydantic import BaseModel, Field

from chatstream.recombiner import MAX_PENDING_FRAMES
from chatstream.sse import DONE_SENTINEL

LOG_FORMAT = '%(asctime)s:%(name)s:%(levelname)s:%(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ReaderSettings(BaseModel):
    """Settings for a :class:`~chatstream.reader.StreamReader`.

    Args:
        provider: Adapter name passed to ``get_adapter``.
        max_pending_frames: How many unparseable fragments are kept for
            recombination before the oldest is dropped.
        sentinel: Frame value that ends the stream.
        encoding: Text encoding of the byte stream.
    """

    provider: str = "openai"
    max_pending_frames: int = Field(default=MAX_PENDING_FRAMES, ge=1)
    sentinel: str = DONE_SENTINEL
    encoding: str = "utf-8"

    @classmethod
    def from_env(cls, **overrides) -> "ReaderSettings":
        values = {}
        if provider := os.getenv("CHATSTREAM_PROVIDER"):
            values["provider"] = provider
        if max_pending := os.getenv("CHATSTREAM_MAX_PENDING_FRAMES"):
            values["max_pending_frames"] = max_pending
        if sentinel := os.getenv("CHATSTREAM_SENTINEL"):
            values["sentinel"] = sentinel
        if encoding := os.getenv("CHATSTREAM_ENCODING"):
            values["encoding"] = encoding
        values.update(overrides)
        return cls.model_validate(values)


def configure_logging(
        level: int = logging.INFO,
        log_file: str | None = None,
) -> None:
    """Install the package log format on the root logger."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
    )
