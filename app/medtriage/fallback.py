"""Safe replies for turns where the model cannot be used or gives nothing displayable.

Every function here returns a ``TriageTurnResult`` with a non-empty message.
"""

from __future__ import annotations

from medtriage.language import resolve_language
from medtriage.parsing import ParsedReply
from medtriage.schemas import TriageTurnResult


def credentials_missing_reply(language: str | None, *, emergency_number: str) -> TriageTurnResult:
    profile = resolve_language(language)
    return TriageTurnResult(message=profile.credentials_missing_message(emergency_number), triage_result=None)


def upstream_failure_reply(language: str | None, *, emergency_number: str) -> TriageTurnResult:
    profile = resolve_language(language)
    return TriageTurnResult(message=profile.upstream_failure_message(emergency_number), triage_result=None)


def conversational_reply(
    parsed: ParsedReply,
    language: str | None,
    *,
    emergency_number: str,
) -> TriageTurnResult:
    """Reply for a successful model call, structured block or not.

    A reply consisting of the block alone has no conversational text; the rationale
    stands in for it, then the first action, then the failure wording.
    """
    message = parsed.message
    result = parsed.triage_result
    if not message and result is not None:
        message = result.rationale or next(iter(result.action_plan), "")
    if not message:
        return upstream_failure_reply(language, emergency_number=emergency_number).model_copy(
            update={"triage_result": result}
        )
    return TriageTurnResult(message=message, triage_result=result)
