"""Canned keyword-matched replies used when demo mode is on; no model is called."""

from __future__ import annotations

from medtriage.schemas import RiskLevel, TriageResult, TriageTurnResult


_DEMO_REPLIES: dict[str, TriageTurnResult] = {
    "headache": TriageTurnResult(
        message=(
            "Based on your description of a headache, this appears to be a common condition that can have "
            "various causes including tension, dehydration, or stress."
        ),
        triage_result=TriageResult(
            risk_level=RiskLevel.LOW,
            rationale=(
                "Headaches are commonly caused by tension, dehydration, or stress. Based on your description, "
                "this appears to be a routine concern."
            ),
            action_plan=[
                "Stay hydrated by drinking plenty of water",
                "Try rest in a quiet, dark room",
                "Consider over-the-counter pain relievers as directed",
                "If headaches persist or worsen, consult a healthcare provider",
            ],
            emergency=False,
            confidence=0.85,
        ),
        demo=True,
    ),
    "fever": TriageTurnResult(
        message=(
            "A fever can be your body's natural response to fighting infection. "
            "Let me assess the severity based on your symptoms."
        ),
        triage_result=TriageResult(
            risk_level=RiskLevel.MEDIUM,
            rationale=(
                "Fever indicates your body is fighting an infection. Monitoring temperature and accompanying "
                "symptoms is important."
            ),
            action_plan=[
                "Monitor your temperature regularly",
                "Stay hydrated with fluids",
                "Get plenty of rest",
                "Consider consulting a healthcare provider if fever persists over 3 days or reaches 103°F (39.4°C)",
            ],
            emergency=False,
            confidence=0.90,
        ),
        demo=True,
    ),
    "chest_pain": TriageTurnResult(
        message=(
            "Chest pain is a symptom that requires careful evaluation. Given the potential seriousness, "
            "I recommend seeking medical attention promptly."
        ),
        triage_result=TriageResult(
            risk_level=RiskLevel.HIGH,
            rationale=(
                "Chest pain can indicate various conditions, some potentially serious. Immediate medical "
                "evaluation is recommended to rule out cardiac or other urgent conditions."
            ),
            action_plan=[
                "Seek immediate medical attention at an emergency room",
                "Do not drive yourself - call {emergency_number} or have someone drive you",
                "If you experience severe chest pain with shortness of breath, call {emergency_number} immediately",
                "Bring a list of current medications and medical history",
            ],
            emergency=True,
            confidence=0.95,
        ),
        demo=True,
    ),
    "cold_symptoms": TriageTurnResult(
        message=(
            "Based on your description of cold-like symptoms, this appears to be a common upper respiratory "
            "condition that typically resolves with rest and supportive care."
        ),
        triage_result=TriageResult(
            risk_level=RiskLevel.LOW,
            rationale=(
                "Common cold symptoms like runny nose, sneezing, and mild congestion are typically viral "
                "and self-limiting."
            ),
            action_plan=[
                "Get plenty of rest and stay hydrated",
                "Use a humidifier or breathe steam from a hot shower",
                "Consider over-the-counter cold medications as directed",
                "See a healthcare provider if symptoms worsen or persist beyond 10 days",
            ],
            emergency=False,
            confidence=0.80,
        ),
        demo=True,
    ),
    "stomach_pain": TriageTurnResult(
        message=(
            "Stomach pain can have various causes ranging from simple indigestion to more serious conditions. "
            "Let me help assess your situation."
        ),
        triage_result=TriageResult(
            risk_level=RiskLevel.MEDIUM,
            rationale=(
                "Abdominal pain can indicate various conditions. The severity, location, and associated "
                "symptoms help determine the appropriate level of care."
            ),
            action_plan=[
                "Avoid solid foods temporarily and stay hydrated with clear fluids",
                "Apply a warm compress to the area if it provides comfort",
                "Monitor for worsening pain, fever, or vomiting",
                "Seek medical attention if pain is severe, persistent, or accompanied by fever",
            ],
            emergency=False,
            confidence=0.75,
        ),
        demo=True,
    ),
    "default": TriageTurnResult(
        message=(
            "Thank you for describing your symptoms. Based on the information provided, I recommend monitoring "
            "your condition and considering professional medical advice."
        ),
        triage_result=TriageResult(
            risk_level=RiskLevel.MEDIUM,
            rationale=(
                "Without being able to conduct a physical examination, it's important to err on the side of "
                "caution and recommend professional medical evaluation."
            ),
            action_plan=[
                "Monitor your symptoms and note any changes",
                "Consider scheduling an appointment with your healthcare provider",
                "Seek immediate care if symptoms worsen significantly",
                "Keep a symptom diary to share with your healthcare provider",
            ],
            emergency=False,
            confidence=0.70,
        ),
        demo=True,
    ),
}

# Checked in order; the first category with a matching keyword wins.
_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("headache", ("headache", "head pain", "migraine")),
    ("fever", ("fever", "temperature", "hot")),
    ("chest_pain", ("chest pain", "chest hurt", "heart")),
    ("cold_symptoms", ("cold", "runny nose", "sneezing", "congestion")),
    ("stomach_pain", ("stomach", "abdominal", "belly", "nausea")),
)


def demo_category(message: str) -> str:
    lower = message.lower()
    for category, keywords in _KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category
    return "default"


def demo_reply(message: str, *, emergency_number: str = "911") -> TriageTurnResult:
    reply = _DEMO_REPLIES[demo_category(message)]
    result = reply.triage_result
    if result is None:
        return reply
    actions = [action.format(emergency_number=emergency_number) for action in result.action_plan]
    return reply.model_copy(update={"triage_result": result.model_copy(update={"action_plan": actions})})
