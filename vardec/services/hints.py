import logging
from typing import List, Optional

from vardec.config import ANALYSIS_FAILED_NOTICE, DEFAULT_TAB_SIZE, HINT_PREFIX, SHOW_USE_COUNTS
from vardec.models import Decoration, HintResponse
from vardec.services.languages.base import LanguageAdapter
from vardec.services.languages.registry import get_adapter, normalize_language
from vardec.services.liveness import DisplayDecision, Document, compute_decisions

logger = logging.getLogger(__name__)


def analyze_document(
    adapter: LanguageAdapter,
    text: str,
    tab_size: int = DEFAULT_TAB_SIZE,
    path: str = "",
    language_id: str = "",
) -> Optional[List[DisplayDecision]]:
    """
    Run the adapter and the liveness engine over one document.

    Returns None when the adapter cannot parse the document. Any other
    problem propagates to the caller.
    """
    ast = adapter.get_ast(text, path, language_id)
    if ast is None:
        return None

    usages = adapter.collect_variable_usage(ast)
    document = Document.from_text(text, tab_size=tab_size)

    def scope_lookup(line: int):
        return adapter.get_scope_range_for_line(ast, line)

    return compute_decisions(document, usages, scope_lookup)


def format_hint(decision: DisplayDecision, show_use_counts: bool = False) -> str:
    if show_use_counts:
        parts = [f"{v.name}({v.remaining_uses})" for v in decision.variables]
    else:
        parts = decision.names
    return f"{HINT_PREFIX}{', '.join(parts)}"


def to_decorations(decisions: List[DisplayDecision], show_use_counts: bool = False) -> List[Decoration]:
    return [
        Decoration(
            line=decision.line,
            column=0,
            text=format_hint(decision, show_use_counts),
            indent=decision.indent,
            variables=decision.names,
        )
        for decision in decisions
    ]


def run_pass(
    text: str,
    language_id: str,
    tab_size: int = DEFAULT_TAB_SIZE,
    path: str = "",
    document_id: str = "",
    show_use_counts: Optional[bool] = None,
) -> HintResponse:
    """
    One complete analysis pass for a document snapshot.

    Never raises: unsupported languages, unparsable documents and analysis
    failures all come back as a response with no decorations, so callers
    clear whatever they showed before instead of half-applying a result.
    """
    resolved = normalize_language(language_id)
    response = HintResponse(document_id=document_id, language_id=resolved)

    adapter = get_adapter(resolved)
    if adapter is None:
        response.status = "unsupported"
        return response

    if show_use_counts is None:
        show_use_counts = SHOW_USE_COUNTS

    try:
        decisions = analyze_document(adapter, text, tab_size=tab_size, path=path, language_id=resolved)
        if decisions is None:
            logger.debug("No analysis for %s: document could not be parsed", path or document_id or "<unsaved>")
            response.status = "unparsable"
            return response
        response.decorations = to_decorations(decisions, show_use_counts)
    except Exception:
        logger.exception("Hint analysis failed for %s", path or document_id or "<unsaved>")
        response.status = "failed"
        response.notice = ANALYSIS_FAILED_NOTICE
        response.decorations = []

    return response


def render_annotated_text(text: str, decorations: List[Decoration]) -> str:
    """
    Write each hint into its blank line, aligned with the code below it.

    Used by the command line renderer; editors draw hints themselves.
    """
    lines = text.split("\n")
    for decoration in decorations:
        if 0 <= decoration.line < len(lines):
            lines[decoration.line] = " " * decoration.indent + decoration.text
    return "\n".join(lines)
