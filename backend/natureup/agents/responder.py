from __future__ import annotations

from typing import Any, Dict, Optional

from natureup.agents_llm.instructions import InstructionSet
from natureup.core.logger import SessionLogger
from natureup.core.nlu import detect_confirmation, detect_excursion_intent
from natureup.core.types import CompletionRequest, Phase, PlanningStep


class Responder:
    """Deterministic completion provider used when USE_LLM is off.

    Honors the same JSON contract as the hosted model, so the orchestrator
    cannot tell the two apart.
    """

    def __init__(self, logger: Optional[SessionLogger] = None) -> None:
        self.logger = logger

    def _planning_reply(self, step: PlanningStep, message: str) -> Dict[str, Any]:
        if step == PlanningStep.ask_duration:
            return {"reply": "How long do you have for this excursion?", "readyToCreate": False}
        if step == PlanningStep.ask_location:
            return {
                "reply": "Do you have a trail in mind, or would you like me to suggest some options?",
                "readyToCreate": False,
            }
        if step == PlanningStep.ask_confirmation:
            return {"reply": "Can I show you some options?", "readyToCreate": False, "askedConfirmation": True}
        if detect_confirmation(message):
            return {"reply": "Great, let me put a few options together for you.", "readyToCreate": True}
        return {"reply": "No problem. Would you like to see some options when you're ready?", "readyToCreate": False}

    def _coach_reply(self, phase: Phase, message: str) -> str:
        if phase == Phase.post_excursion_followup:
            return "Welcome back! How did that feel, and what did you notice out there?"
        if detect_excursion_intent(message):
            return "Getting outside sounds like a great idea. Let's plan something together."
        return "Thanks for sharing. Try pausing for three slow breaths and noticing one sound around you."

    def run(self, request: CompletionRequest, instructions: InstructionSet) -> Dict[str, Any]:
        message = str(request.input.get("message", ""))
        if instructions.planning_step is not None:
            result = self._planning_reply(instructions.planning_step, message)
        elif instructions.phase == Phase.excursion_creation:
            result = {"reply": "Here's your excursion. Tell me if you'd like it shorter, easier or somewhere else."}
        elif instructions.phase == Phase.excursion_guiding:
            result = {"reply": "Take a moment to notice what you can hear right now, and keep an easy pace."}
        elif instructions.action == "health_coach_message":
            result = {"reply": self._coach_reply(instructions.phase, message)}
        else:
            result = {"reply": "I can help you plan a short time outside whenever you're ready."}

        if self.logger:
            self.logger.step(
                "responder",
                {"action": instructions.action, "phase": instructions.phase.value, "message": message},
                result,
            )
        return result

    # CompletionProvider
    complete = run
