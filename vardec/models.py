from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from vardec.config import DEFAULT_TAB_SIZE

PassStatus = Literal["ok", "unsupported", "unparsable", "failed"]


class Decoration(BaseModel):
    # 0-based line of the blank line the hint is drawn on
    line: int
    column: int = 0
    text: str
    # Indentation units of the next non-blank line, so the hint lines up with it
    indent: int = 0
    variables: List[str] = Field(default_factory=list)


class HintResponse(BaseModel):
    document_id: str = ""
    language_id: str = ""
    status: PassStatus = "ok"
    # Short user-visible message; only set when a pass failed
    notice: Optional[str] = None
    # Use default_factory to avoid sharing the same list across instances
    decorations: List[Decoration] = Field(default_factory=list)
    generation: int = 0


class AnalyzeRequest(BaseModel):
    text: str
    language_id: str
    tab_size: int = Field(default=DEFAULT_TAB_SIZE, ge=1)
    path: str = ""
    show_use_counts: Optional[bool] = None


class DocumentEvent(BaseModel):
    kind: Literal["open", "activate", "change"]
    text: str
    language_id: str
    tab_size: int = Field(default=DEFAULT_TAB_SIZE, ge=1)
    path: str = ""


class EventAck(BaseModel):
    document_id: str
    scheduled: bool
    generation: int = 0
