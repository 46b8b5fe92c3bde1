import asyncio
import unittest

from medtriage.config import Settings
from medtriage.engine import TriageEngine
from medtriage.parsing import parse_model_reply
from medtriage.schemas import RiskLevel, TriageRequest


class EchoBlockClient:
    async def complete(self, turns):
        return (
            "Monitor your temperature.\n"
            "TRIAGE_RESULT:\n"
            "Risk: MEDIUM\n"
            "Rationale: Fever for three days\n"
            "Actions:\n"
            "- See a doctor within 48 hours\n"
            "Emergency: false\n"
            "Confidence: 0.7\n"
        )


class MedTriageSmokeTests(unittest.TestCase):
    def test_parse_reply_without_block(self):
        parsed = parse_model_reply("Could you tell me more about the pain?")

        self.assertIsNone(parsed.triage_result)
        self.assertEqual(parsed.message, "Could you tell me more about the pain?")

    def test_engine_turn_with_structured_block(self):
        engine = TriageEngine(Settings(api_key="k", demo_mode=False), EchoBlockClient())

        result = asyncio.run(engine.run(TriageRequest(message="fever since Monday")))

        self.assertEqual(result.message, "Monitor your temperature.")
        self.assertIsNotNone(result.triage_result)
        self.assertEqual(result.triage_result.risk_level, RiskLevel.MEDIUM)
        self.assertEqual(result.triage_result.action_plan, ["See a doctor within 48 hours"])

    def test_engine_without_key_is_safe(self):
        engine = TriageEngine(Settings(api_key=None, demo_mode=False), EchoBlockClient())

        result = asyncio.run(engine.run(TriageRequest(message="fever")))

        self.assertIsNone(result.triage_result)
        self.assertIn("911", result.message)


if __name__ == "__main__":
    unittest.main()
