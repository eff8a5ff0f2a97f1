"""Health endpoint for the cotscope API."""

from __future__ import annotations

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from cotscope.config.settings import POSITIONS_DB

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Health check endpoint.

    Returns status of the API and the position store.
    Status 200 if all OK, 503 if the store is unavailable.
    """
    data_dir = request.app.state.data_dir
    status = {"api": "ok"}
    any_unavailable = False

    db_path = data_dir / POSITIONS_DB
    if db_path.exists():
        store = None
        try:
            from cotscope.data.store.position_store import PositionStore

            store = PositionStore(db_path)
            status["position_store"] = "ok"
            status["latest_report"] = store.get_stats()["latest_date"]
        except Exception:
            status["position_store"] = "unavailable"
            any_unavailable = True
        finally:
            if store is not None:
                store.close()
    else:
        status["position_store"] = "unavailable"
        any_unavailable = True

    status_code = 503 if any_unavailable else 200
    return JSONResponse(content=status, status_code=status_code)
