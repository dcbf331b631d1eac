"""
Interfaces the host application provides to the plugin.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .fs.storage import Document


PASTE_ORIGIN = "paste"


@dataclass(frozen=True)
class EditorChange:
    """A text change in the editor; origin is e.g. "paste", "+input", "undo"."""
    origin: str
    text: str


EditorObserver = Callable[[EditorChange], None]


class Workspace(Protocol):
    def get_active_document(self) -> Optional[Document]: ...


class EditorChangeSource(Protocol):
    def subscribe(self, observer: EditorObserver) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        ...
