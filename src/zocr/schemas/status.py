"""
Status notices emitted to the host UI.
"""

from typing import Callable, Optional
from pydantic import BaseModel, Field


class StatusNotice(BaseModel):
    """
    Coarse lifecycle notice for a host status indicator.
    An empty notice (no text) clears the indicator.
    """

    fill: Optional[str] = Field(default=None, description="Indicator colour")
    shape: Optional[str] = Field(default=None, description="Indicator shape")
    text: Optional[str] = Field(default=None, description="Short status text")

    @classmethod
    def busy(cls, text: str) -> "StatusNotice":
        return cls(fill="blue", shape="dot", text=text)

    @classmethod
    def failed(cls, text: str = "failed") -> "StatusNotice":
        return cls(fill="red", shape="ring", text=text)

    @classmethod
    def clear(cls) -> "StatusNotice":
        return cls()


StatusSink = Callable[[StatusNotice], None]
