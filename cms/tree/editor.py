"""Éditeur d'arborescence : mutation optimiste puis confirmation ou rollback.

Cycle d'un déplacement : IDLE -> MUTATING -> (CONFIRMED | ROLLED_BACK) -> IDLE.
La mutation est appliquée au PageStore avant l'appel réseau ; un rendu fait
pendant l'appel montre déjà le nouvel ordre.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from cms.core.errors import PersistenceError
from cms.tree.dropzone import DragMetrics, DropZone, classify_drop
from cms.tree.engine import MoveResult, plan_drop, plan_move
from cms.tree.renderer import TreeNode, render_tree
from cms.tree.store import PageId, PageStore

logger = logging.getLogger(__name__)


class EditorState(str, Enum):
    IDLE = "idle"
    MUTATING = "mutating"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


class OutcomeStatus(str, Enum):
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
    NOOP = "noop"


@dataclass
class MoveOutcome:
    status: OutcomeStatus
    result: MoveResult
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.ROLLED_BACK


class PageTreeEditor:
    def __init__(self, store: PageStore, gateway, on_error: Callable[[Exception], None] = None):
        self.store = store
        self.gateway = gateway
        self.on_error = on_error
        self.last_error: Optional[Exception] = None
        self.history: List[EditorState] = []
        self._in_flight = 0
        self._state = EditorState.IDLE

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def _transition(self, state: EditorState) -> None:
        logger.debug("Editor state %s -> %s", self._state.value, state.value)
        self._state = state
        self.history.append(state)

    def render(self) -> List[TreeNode]:
        return render_tree(self.store)

    async def refresh(self) -> None:
        """Recharge le store depuis la source persistée."""
        records = await self.gateway.fetch_pages()
        self.store.replace_all(records)

    # ---- déplacements ----

    async def drop(self, page_id: PageId, zone: DropZone, pointer_x: float,
                   metrics: DragMetrics, threshold: float = None) -> MoveOutcome:
        placement = classify_drop(zone, pointer_x, metrics, threshold)
        result = plan_drop(self.store, page_id, placement)
        return await self.commit(result)

    async def move(self, page_id: PageId, new_parent_id: Optional[PageId],
                   index: Optional[int] = None) -> MoveOutcome:
        # InvalidMove remonte ici : ni mutation ni appel réseau
        result = plan_move(self.store, page_id, new_parent_id, index)
        return await self.commit(result)

    async def commit(self, result: MoveResult) -> MoveOutcome:
        if result.is_noop:
            return MoveOutcome(OutcomeStatus.NOOP, result)

        snapshot = self.store.snapshot()
        self.store.apply(result)
        self._in_flight += 1
        self._transition(EditorState.MUTATING)

        try:
            await self.gateway.persist(result)
        except PersistenceError as exc:
            # pas de retry : l'opérateur refait le geste
            self.store.restore(snapshot)
            self.last_error = exc
            self._transition(EditorState.ROLLED_BACK)
            logger.warning("Move of page %s rolled back: %s", result.page_id, exc)
            if self.on_error is not None:
                self.on_error(exc)
            outcome = MoveOutcome(OutcomeStatus.ROLLED_BACK, result, exc)
        except BaseException:
            # y compris CancelledError : la mutation optimiste ne reste jamais appliquée
            self.store.restore(snapshot)
            self._transition(EditorState.ROLLED_BACK)
            raise
        else:
            self._transition(EditorState.CONFIRMED)
            logger.info("Move of page %s confirmed (%s)", result.page_id, result.kind.value)
            outcome = MoveOutcome(OutcomeStatus.CONFIRMED, result)
        finally:
            self._in_flight -= 1
            self._transition(EditorState.MUTATING if self._in_flight else EditorState.IDLE)

        return outcome

    # ---- opérations qui invalident le store ----

    async def toggle_active(self, page_id: PageId) -> None:
        await self.gateway.toggle_active(page_id)
        await self.refresh()

    async def delete_page(self, page_id: PageId, with_descendants: bool = False) -> None:
        await self.gateway.delete_page(page_id, with_descendants)
        await self.refresh()
