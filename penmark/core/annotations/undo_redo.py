"""
Undo/Redo history for highlight shapes.
"""
from typing import Dict, List, Optional, Tuple

from .models import HighlightShape

PageShapes = Dict[int, Tuple[HighlightShape, ...]]


class UndoRedoStack:
    """Bounded history of whole-store snapshots."""

    def __init__(self, max_size: int = 50):
        """
        Initialize the undo/redo stack.

        Args:
            max_size: Maximum number of states to keep in history
        """
        self.undo_stack: List[PageShapes] = []
        self.redo_stack: List[PageShapes] = []
        self.max_size = max_size

    def push_state(self, state: PageShapes) -> None:
        """
        Push a state to the undo stack.

        Shapes are immutable, so a shallow copy of the page mapping is a
        complete snapshot.
        """
        self.undo_stack.append(dict(state))

        # Clear redo stack when new action is performed
        self.redo_stack.clear()

        if len(self.undo_stack) > self.max_size:
            self.undo_stack.pop(0)

    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0

    def undo(self, current_state: PageShapes) -> Optional[PageShapes]:
        """
        Perform undo and return the previous state.

        Args:
            current_state: State before undo, kept for redo

        Returns:
            Previous state, or None if undo not available
        """
        if not self.can_undo():
            return None
        self.redo_stack.append(dict(current_state))
        return self.undo_stack.pop()

    def redo(self, current_state: PageShapes) -> Optional[PageShapes]:
        """
        Perform redo and return the next state.

        Args:
            current_state: State before redo, kept for undo

        Returns:
            Next state, or None if redo not available
        """
        if not self.can_redo():
            return None
        self.undo_stack.append(dict(current_state))
        return self.redo_stack.pop()

    def clear(self) -> None:
        """Clear both stacks."""
        self.undo_stack.clear()
        self.redo_stack.clear()
