from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from vardec.models import AnalyzeRequest, DocumentEvent, EventAck, HintResponse
from vardec.services.hints import run_pass
from vardec.services.languages.registry import supported_language_ids
from vardec.services.session import HintSessionManager

router = APIRouter(prefix="/api/hints", tags=["hints"])


def get_session_manager(request: Request) -> HintSessionManager:
    manager = getattr(request.app.state, "hint_sessions", None)
    if manager is None or not manager.running:
        raise HTTPException(status_code=503, detail="Hint sessions are not running")
    return manager


@router.get("/languages", response_model=List[str])
async def get_languages():
    """Language identifiers that get blank-line hints."""
    return supported_language_ids()


@router.post("/analyze", response_model=HintResponse)
async def analyze(body: AnalyzeRequest):
    """
    Analyse a document snapshot right away, without debouncing.

    Unsupported languages and unparsable documents return an empty
    decoration list rather than an error.
    """
    return run_pass(
        body.text,
        body.language_id,
        tab_size=body.tab_size,
        path=body.path,
        show_use_counts=body.show_use_counts,
    )


@router.post("/documents/{document_id}/events", response_model=EventAck, status_code=202)
async def post_document_event(
    document_id: str,
    event: DocumentEvent,
    manager: HintSessionManager = Depends(get_session_manager),
):
    """
    Notify the server that a document was opened, activated or edited.

    The pass runs after the settle period; fetch the result from
    `GET /api/hints/documents/{document_id}`.
    """
    return manager.handle_event(document_id, event)


@router.get("/documents/{document_id}", response_model=HintResponse)
async def get_document_hints(
    document_id: str,
    manager: HintSessionManager = Depends(get_session_manager),
):
    response = manager.decorations(document_id)
    if response is None:
        raise HTTPException(status_code=404, detail="No hints for this document")
    return response


@router.post("/documents/{document_id}/flush", response_model=HintResponse)
async def flush_document(
    document_id: str,
    manager: HintSessionManager = Depends(get_session_manager),
):
    """Run a pending pass immediately (e.g. on save) and return the applied hints."""
    manager.flush(document_id)
    response = manager.decorations(document_id)
    if response is None:
        raise HTTPException(status_code=404, detail="No hints for this document")
    return response


@router.delete("/documents/{document_id}", status_code=204)
async def close_document(
    document_id: str,
    manager: HintSessionManager = Depends(get_session_manager),
):
    if not manager.close_document(document_id):
        raise HTTPException(status_code=404, detail="Unknown document")
