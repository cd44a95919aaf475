from __future__ import annotations

from typing import Any, Dict, Protocol

from natureup.agents_llm.instructions import InstructionSet
from natureup.core.errors import NatureUpError
from natureup.core.types import CompletionRequest, CompletionResponse


class CompletionProvider(Protocol):
    """Anything that can answer a chat turn with a JSON object.

    Implementations raise NatureUpError subclasses on failure.
    """

    def complete(self, request: CompletionRequest, instructions: InstructionSet) -> Dict[str, Any]:
        ...


def run_completion(
    provider: CompletionProvider, request: CompletionRequest, instructions: InstructionSet
) -> CompletionResponse:
    """Call ``provider`` and fold the outcome into the ``{ok, result, error}`` envelope."""
    try:
        result = provider.complete(request, instructions)
    except NatureUpError as ex:
        return CompletionResponse(ok=False, error=ex.to_info())
    return CompletionResponse(ok=True, result=result)
