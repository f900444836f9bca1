import os
from typing import Set


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {'1', 'true', 'yes', 'on'}


# Run analysis automatically when a document is opened or its editor becomes active.
# Edits always schedule a pass.
AUTO_ANALYZE: bool = _env_bool('VARDEC_AUTO_ANALYZE', True)

# Quiet period after the last trigger before a pass runs, in seconds.
SETTLE_DELAY_SECONDS: float = float(os.environ.get('VARDEC_SETTLE_DELAY', '0.5'))

# Used when the editor does not send its own tab width.
DEFAULT_TAB_SIZE: int = int(os.environ.get('VARDEC_TAB_SIZE', '4'))

# Render `name(n)` with the number of uses left in scope.
SHOW_USE_COUNTS: bool = _env_bool('VARDEC_SHOW_USE_COUNTS', False)

HINT_PREFIX: str = '↳ '

ANALYSIS_FAILED_NOTICE: str = 'Decoration analysis failed for this file'

# Editor-facing language identifiers that trigger analysis.
SUPPORTED_LANGUAGE_IDS: Set[str] = {
    'typescript',
    'typescriptreact',
    'javascript',
    'javascriptreact',
    'go',
}
