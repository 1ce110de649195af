"""Exceptions métier de l'arborescence des pages et leurs handlers HTTP."""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PageTreeError(Exception):
    status_code = 400


class PageNotFound(PageTreeError):
    status_code = 404

    def __init__(self, page_id):
        self.page_id = page_id
        super().__init__(f"Page not found: {page_id}")


class InvalidMove(PageTreeError):
    """Déplacement refusé avant toute mutation (parent = soi-même ou descendant)."""
    status_code = 400


class CycleDetected(PageTreeError):
    """La chaîne des parents boucle : données corrompues."""
    status_code = 500

    def __init__(self, page_id, chain=None):
        self.page_id = page_id
        self.chain = list(chain or [])
        super().__init__(f"Cycle detected while walking ancestors of {page_id}: {self.chain}")


class InvariantViolation(PageTreeError):
    status_code = 409


class SlugConflict(PageTreeError):
    status_code = 409


class PersistenceError(Exception):
    """Échec d'un appel à la passerelle de persistance (réseau ou serveur)."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


def register_error_handlers(app: FastAPI):
    @app.exception_handler(PageTreeError)
    async def handle_page_tree_error(request: Request, error: PageTreeError):
        if isinstance(error, CycleDetected):
            logger.error("Data integrity fault on %s: %s", request.url.path, error)
        else:
            logger.warning("%s on %s: %s", type(error).__name__, request.url.path, error)
        return JSONResponse(
            status_code=error.status_code,
            content={"error": type(error).__name__, "detail": str(error)},
        )
