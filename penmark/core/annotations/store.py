"""
Process-wide store of highlight shapes for the open document.
"""
import logging
import threading
from typing import Callable, List, Optional, Set, Tuple

from .models import HighlightShape
from .undo_redo import PageShapes, UndoRedoStack

logger = logging.getLogger(__name__)

PageChangedCallback = Callable[[int], None]


class AnnotationStore:
    """
    Ordered highlight shapes per page with undo/redo support.

    Insertion order is paint order: later shapes draw over earlier ones.
    Every mutation notifies subscribers with the affected page index so only
    that page's overlay is repainted.
    """

    def __init__(self, history_size: int = 50):
        self._pages: PageShapes = {}
        self._lock = threading.RLock()
        self.undo_redo_stack = UndoRedoStack(history_size)
        self._saved_state: PageShapes = {}
        self._listeners: List[PageChangedCallback] = []

    def subscribe(self, callback: PageChangedCallback) -> None:
        self._listeners.append(callback)

    def _notify(self, pages) -> None:
        for page_index in sorted(pages):
            for callback in list(self._listeners):
                callback(page_index)

    # ===== Queries =====

    def get(self, page_index: int) -> Tuple[HighlightShape, ...]:
        """
        Get all shapes for a page in paint order.

        Args:
            page_index: 0-based page index

        Returns:
            Tuple of shapes, empty if the page has none
        """
        with self._lock:
            return self._pages.get(page_index, ())

    def pages(self) -> List[int]:
        """Indices of pages holding at least one shape."""
        with self._lock:
            return sorted(i for i, shapes in self._pages.items() if shapes)

    def count(self) -> int:
        with self._lock:
            return sum(len(shapes) for shapes in self._pages.values())

    def shape_at(self, page_index: int, nx: float, ny: float) -> Optional[HighlightShape]:
        """
        Find the shape under a normalized point.

        When several shapes contain the point the smallest one wins, so a
        small highlight nested in a larger one stays reachable. Among equally
        sized shapes the most recently added (topmost) wins.
        """
        hit = None
        for shape in self.get(page_index):
            if shape.contains(nx, ny) and (hit is None or shape.area <= hit.area):
                hit = shape
        return hit

    # ===== Mutations =====

    def append(self, page_index: int, shape: HighlightShape) -> None:
        if shape.page_index != page_index:
            raise ValueError(
                f"Shape belongs to page {shape.page_index}, not page {page_index}"
            )
        with self._lock:
            self.undo_redo_stack.push_state(self._pages)
            self._pages[page_index] = self._pages.get(page_index, ()) + (shape,)
        self._notify({page_index})

    def remove(self, page_index: int, shape_id: str) -> Optional[HighlightShape]:
        """
        Remove a shape by id.

        Returns:
            The removed shape, or None if no shape had that id
        """
        with self._lock:
            shapes = self._pages.get(page_index, ())
            removed = next((s for s in shapes if s.id == shape_id), None)
            if removed is None:
                return None
            self.undo_redo_stack.push_state(self._pages)
            self._pages[page_index] = tuple(s for s in shapes if s.id != shape_id)
        self._notify({page_index})
        return removed

    def replace(self, page_index: int, shape_id: str, new_shape: HighlightShape) -> bool:
        """Swap a shape for a new one at the same paint position."""
        with self._lock:
            shapes = self._pages.get(page_index, ())
            ids = [s.id for s in shapes]
            if shape_id not in ids:
                return False
            self.undo_redo_stack.push_state(self._pages)
            position = ids.index(shape_id)
            self._pages[page_index] = (
                shapes[:position] + (new_shape,) + shapes[position + 1:]
            )
        self._notify({page_index})
        return True

    def clear(self) -> None:
        """Drop every shape and the undo history (new document)."""
        with self._lock:
            affected = set(self._pages)
            self._pages = {}
            self._saved_state = {}
            self.undo_redo_stack.clear()
        self._notify(affected)

    # ===== Undo / redo =====

    def can_undo(self) -> bool:
        return self.undo_redo_stack.can_undo()

    def can_redo(self) -> bool:
        return self.undo_redo_stack.can_redo()

    def undo(self) -> List[int]:
        """
        Restore the state before the last mutation.

        Returns:
            Pages whose shapes changed
        """
        with self._lock:
            previous = self.undo_redo_stack.undo(self._pages)
            if previous is None:
                return []
            affected = self._changed_pages(self._pages, previous)
            self._pages = previous
        self._notify(affected)
        return sorted(affected)

    def redo(self) -> List[int]:
        with self._lock:
            following = self.undo_redo_stack.redo(self._pages)
            if following is None:
                return []
            affected = self._changed_pages(self._pages, following)
            self._pages = following
        self._notify(affected)
        return sorted(affected)

    @staticmethod
    def _changed_pages(before: PageShapes, after: PageShapes) -> Set[int]:
        return {
            i for i in set(before) | set(after)
            if before.get(i, ()) != after.get(i, ())
        }

    # ===== Change tracking =====

    @property
    def has_changes(self) -> bool:
        """True if shapes differ from the last `mark_saved` point."""
        with self._lock:
            return bool(self._changed_pages(self._pages, self._saved_state))

    def mark_saved(self) -> None:
        with self._lock:
            self._saved_state = dict(self._pages)
