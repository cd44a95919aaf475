from __future__ import annotations

from typing import Any, Dict, List, Optional

from langchain_aws import ChatBedrock

from natureup.agents_llm.instructions import InstructionSet
from natureup.core.logger import SessionLogger
from natureup.core.types import CompletionRequest
from natureup.llm.bedrock import call_llm_json, get_bedrock_client


def build_messages(request: CompletionRequest, instructions: InstructionSet) -> List[Dict[str, str]]:
    """System prompt, prior turns (system entries dropped), then the new user message."""
    messages = [{"role": "system", "content": instructions.system_prompt}]
    messages.extend(
        {"role": m.role, "content": m.content} for m in request.conversation_history if m.role != "system"
    )
    messages.append({"role": "user", "content": str(request.input.get("message", ""))})
    return messages


class LLMResponder:
    def __init__(self, logger: Optional[SessionLogger] = None, llm: Optional[ChatBedrock] = None) -> None:
        self.logger = logger
        self._llm = llm

    @property
    def llm(self) -> ChatBedrock:
        if self._llm is None:
            self._llm = get_bedrock_client()
        return self._llm

    def complete(self, request: CompletionRequest, instructions: InstructionSet) -> Dict[str, Any]:
        result = call_llm_json(build_messages(request, instructions), self.llm)
        if self.logger:
            self.logger.step(
                "responder_llm",
                {"action": instructions.action, "phase": instructions.phase.value},
                result,
            )
        return result
