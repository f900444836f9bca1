from pathlib import Path
from typing import Dict, List, Optional

from vardec.config import SUPPORTED_LANGUAGE_IDS
from vardec.services.languages.base import LanguageAdapter
from vardec.services.languages.go import GoAdapter
from vardec.services.languages.typescript import TypeScriptAdapter

# Adapters hold no per-document state, so one instance serves every pass.
_ADAPTERS: List[LanguageAdapter] = [TypeScriptAdapter(), GoAdapter()]

_LANGUAGE_ALIASES: Dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescriptreact",
    "js": "javascript",
    "jsx": "javascriptreact",
    "golang": "go",
}

_EXTENSION_LANGUAGE_MAP: Dict[str, str] = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".go": "go",
}


def normalize_language(language_id: str) -> str:
    normalized = (language_id or "").strip().lower()
    return _LANGUAGE_ALIASES.get(normalized, normalized)


def get_adapter(language_id: str) -> Optional[LanguageAdapter]:
    resolved = normalize_language(language_id)
    if resolved not in SUPPORTED_LANGUAGE_IDS:
        return None
    for adapter in _ADAPTERS:
        if resolved in adapter.language_ids:
            return adapter
    return None


def language_id_for_path(path: str) -> Optional[str]:
    return _EXTENSION_LANGUAGE_MAP.get(Path(path).suffix.lower())


def supported_language_ids() -> List[str]:
    return sorted(language_id for language_id in SUPPORTED_LANGUAGE_IDS if get_adapter(language_id))
