"""Wire models for the stdio protocol."""

from __future__ import annotations

from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, StrictInt

C_INT_MIN = -(2**31)
C_INT_MAX = 2**31 - 1


def clamp_c_int(value: int) -> int:
    """Saturate an integer to the C ``int`` range librime takes."""
    return max(C_INT_MIN, min(C_INT_MAX, value))


CInt = Annotated[StrictInt, AfterValidator(clamp_c_int)]


class KeyEvent(BaseModel):
    """One request line: an X11 keysym and a modifier bitmask."""

    model_config = ConfigDict(frozen=True)

    keycode: CInt
    modifiers: CInt


NEUTRAL_KEY = KeyEvent(keycode=0, modifiers=0)


class CommitPayload(BaseModel):
    text: Optional[str] = None


class CompositionPayload(BaseModel):
    preedit: str


class CandidatePayload(BaseModel):
    text: str
    comment: Optional[str] = None
    label: Optional[str] = None


class MenuPayload(BaseModel):
    candidates: List[CandidatePayload]


class Response(BaseModel):
    """Envelope for a handled key; every key is always serialized."""

    commit: Optional[CommitPayload] = None
    composition: Optional[CompositionPayload] = None
    menu: Optional[MenuPayload] = None
