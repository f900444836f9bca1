from fastapi import APIRouter, HTTPException, Query
from pathlib import Path
from typing import Optional

from vardec.config import DEFAULT_TAB_SIZE
from vardec.models import HintResponse
from vardec.services.hints import run_pass
from vardec.services.languages.registry import language_id_for_path

router = APIRouter(prefix="/api/files", tags=["files"])

@router.get("/hints", response_model=HintResponse)
async def get_file_hints(
    path: str = Query(..., description="Absolute path to the file"),
    tab_size: int = Query(DEFAULT_TAB_SIZE, ge=1),
    show_use_counts: Optional[bool] = Query(None),
):
    """
    Analyse a file on disk. The language is picked from the file extension.
    """
    file_path = Path(path)

    if not file_path.exists():
        raise HTTPException(status_code=404, detail="File not found")

    if not file_path.is_file():
        raise HTTPException(status_code=400, detail="Path is not a file")

    language_id = language_id_for_path(str(file_path))
    if language_id is None:
        raise HTTPException(status_code=415, detail=f"Unsupported file type: {file_path.suffix}")

    try:
        text = file_path.read_text(encoding="utf-8")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to read file: {str(e)}")

    return run_pass(
        text,
        language_id,
        tab_size=tab_size,
        path=str(file_path),
        document_id=str(file_path),
        show_use_counts=show_use_counts,
    )
