"""Prompt construction for the triage model call."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from medtriage.language import resolve_language
from medtriage.parsing import TRIAGE_MARKER
from medtriage.schemas import Message, Sender

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class PromptTurn:
    role: Role
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


_ROLE_BY_SENDER: dict[Sender, Role] = {
    Sender.USER: "user",
    Sender.ASSISTANT: "assistant",
}

EMERGENCY_TRIGGERS = (
    "chest pain with shortness of breath",
    "severe bleeding",
    "loss of consciousness",
    "severe allergic reactions",
    "thoughts of self-harm",
)


def build_system_instruction(language: str | None, *, emergency_number: str = "911") -> str:
    profile = resolve_language(language)
    triggers = ", ".join(EMERGENCY_TRIGGERS)
    lines = [
        "You are a medical triage AI assistant designed to help users assess their symptoms "
        "and understand appropriate next steps. You provide informational support only - NOT medical advice.",
        "",
        f"Language: {profile.directive}",
        "",
        "Your role:",
        "1. Listen to symptom descriptions with empathy and professionalism",
        "2. Ask clarifying questions when needed",
        "3. Provide risk assessment (LOW, MEDIUM, HIGH) with clear rationale",
        "4. Suggest appropriate action plans based on risk level",
        "5. Escalate to emergency services for life-threatening situations",
        "",
        "Risk Level Guidelines:",
        "- LOW: Minor symptoms, self-care appropriate, routine doctor visit if persistent",
        "- MEDIUM: Concerning symptoms that warrant medical attention within 24-48 hours",
        "- HIGH: Serious symptoms requiring immediate medical attention or ER visit",
        "",
        "Emergency Escalation:",
        f"If symptoms suggest immediate danger ({triggers}), immediately recommend calling "
        f"{emergency_number} or local emergency services.",
        "",
        "Response Format:",
        "Provide a conversational response in the specified language, then if you have enough "
        "information to conclude, end with exactly this block:",
        "",
        TRIAGE_MARKER,
        "Risk: [LOW|MEDIUM|HIGH]",
        "Rationale: [Brief single-line explanation of why this risk level, in the specified language]",
        "Actions:",
        "- [One recommended action per line, in the specified language]",
        "Emergency: [true|false]",
        "Confidence: [0.0-1.0 - How confident you are in this assessment based on available information]",
        "",
        "If you still need to ask a clarifying question, omit the block entirely.",
        "",
        "Important Disclaimers:",
        "- Always remind users this is not medical advice",
        "- Encourage professional medical consultation",
        "- Be culturally sensitive and avoid assumptions",
        "- Never diagnose specific conditions",
        "- Focus on symptoms and appropriate care seeking behavior",
        f"- Use culturally appropriate emergency contact information ({emergency_number} in US, etc.)",
    ]
    return "\n".join(lines)


def replayable_history(history: Sequence[Message]) -> list[Message]:
    """Drop the leading application greeting; the model never said it."""
    return list(history[1:])


def build_prompt(
    new_message: str,
    history: Sequence[Message],
    language: str | None,
    *,
    emergency_number: str = "911",
) -> list[PromptTurn]:
    turns = [PromptTurn("system", build_system_instruction(language, emergency_number=emergency_number))]
    turns.extend(PromptTurn(_ROLE_BY_SENDER[msg.sender], msg.content) for msg in replayable_history(history))
    turns.append(PromptTurn("user", new_message))
    return turns
