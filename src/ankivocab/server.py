import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Literal
from urllib.parse import quote

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from ankivocab.application.data_service import AnkiDataService
from ankivocab.consts import VERSION
from ankivocab.domain.errors import ExportFailed, StorageError
from ankivocab.domain.models import TermPair

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("ankivocab.server")

_service: AnkiDataService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"ankivocab server v{VERSION} starting up...")
    yield
    logger.info("ankivocab server shutting down...")


app = FastAPI(
    title="ankivocab server",
    description="Anki deck import/export and vocabulary mastery tracking.",
    version=VERSION,
    lifespan=lifespan,
)


async def get_service() -> AnkiDataService:
    """One service (and therefore one store) per process, built on first use."""
    global _service
    if _service is None:
        from ankivocab.application.config import resolve_config
        from ankivocab.application.factory import get_data_service

        _service = await get_data_service(resolve_config())
    return _service


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------- Queries ----------


@app.get("/stats")
async def get_stats(service: AnkiDataService = Depends(get_service)):
    return jsonable_encoder(asdict(service.get_statistics()))


@app.get("/guidance")
async def get_guidance(service: AnkiDataService = Depends(get_service)):
    return asdict(service.get_vocabulary_guidance())


@app.get("/decks")
async def list_decks(service: AnkiDataService = Depends(get_service)):
    return jsonable_encoder([asdict(d) for d in service.list_decks()])


# ---------- Imports ----------


def _import_response(result) -> JSONResponse:
    status = 200 if result.success else 422
    return JSONResponse(status_code=status, content=jsonable_encoder(asdict(result)))


@app.post("/import/apkg")
async def import_apkg(
    request: Request,
    filename: str = "deck.apkg",
    service: AnkiDataService = Depends(get_service),
):
    """Import an .apkg sent as the raw request body."""
    data = await request.body()
    logger.info(f"APKG import requested: {filename} ({len(data)} bytes)")
    return _import_response(await service.import_apkg(data, filename))


class TabularImportRequest(BaseModel):
    filename: str
    content: str
    tier: Literal["mastered", "familiar", "learning", "new"] = "new"


@app.post("/import/tabular")
async def import_tabular(
    req: TabularImportRequest, service: AnkiDataService = Depends(get_service)
):
    logger.info(f"Tabular import requested: {req.filename} (tier={req.tier})")
    return _import_response(await service.import_tabular(req.content, req.filename, req.tier))


# ---------- Mutation ----------


@app.delete("/decks/{name}")
async def remove_deck(name: str, service: AnkiDataService = Depends(get_service)):
    if not any(d.name == name for d in service.store.decks):
        raise HTTPException(status_code=404, detail=f"No deck named '{name}'")
    try:
        store = await service.remove_deck(name)
    except StorageError as e:
        logger.error(f"Remove failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"ok": True, "decks": len(store.decks), "total_cards": store.total_cards}


@app.delete("/data")
async def clear_data(service: AnkiDataService = Depends(get_service)):
    try:
        await service.clear_all_data()
    except StorageError as e:
        logger.error(f"Clear failed: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"ok": True}


# ---------- Export ----------


class TermModel(BaseModel):
    term: str
    counterpart: str = ""
    interval: int | None = Field(default=None, ge=0)
    ease: int | None = Field(default=None, gt=0)


class ExportRequest(BaseModel):
    deck_name: str = "Vocabulary"
    terms: list[TermModel]


@app.post("/export")
async def export_apkg(req: ExportRequest, service: AnkiDataService = Depends(get_service)):
    terms = [
        TermPair(
            term=t.term, counterpart=t.counterpart, interval_days=t.interval, ease_factor=t.ease
        )
        for t in req.terms
    ]
    try:
        data = service.export_apkg(req.deck_name, terms)
    except ExportFailed as e:
        logger.error(f"Export failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    filename = quote(f"{req.deck_name}.apkg")
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{filename}"},
    )
