import os
import unittest

# Keep API tests deterministic: no burst limiter, no real OpenAI calls.
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("APP_ENV", "production")

from fastapi.testclient import TestClient

from app.core.usage_gate import get_usage_store
from app.core.usage_store import InMemoryUsageStore, UsageStore
from app.main import app
from app.services.ai_service import AIService, get_ai_service
from app.services.llm_client import LLMServiceError

ANALYSIS_REPLY = (
    'Here is the result: {"matchScore":72,"missingKeywords":["SQL"],"suggestions":["Add metrics"],'
    '"rewriteExamples":[],"overallFeedback":"Good"} Let me know if you need anything else.'
)

EMAIL_REPLY = (
    '{"improvedEmail":"Dear Ms. Lee, thank you for the interview.","explanation":"Tightened wording",'
    '"improvements":["Added greeting"],"tone":"Warm","professionalismScore":88}'
)


class FakeLLM:
    def __init__(self, reply: str = ANALYSIS_REPLY, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, *, system_prompt, user_prompt, temperature=0.7, max_tokens=1500):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.error is not None:
            raise self.error
        return self.reply


class BrokenStatusStore(InMemoryUsageStore):
    def status(self, client_id):
        raise RuntimeError("clock unavailable")


class RacingStore(InMemoryUsageStore):
    """Reports free capacity on status but loses the increment race."""

    def _try_increment(self, client_id, day):
        return None


class AIApiTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        self.store: UsageStore = InMemoryUsageStore(limit=3)
        self.llm = FakeLLM()
        app.dependency_overrides[get_usage_store] = lambda: self.store
        app.dependency_overrides[get_ai_service] = lambda: AIService(self.llm)
        self.addCleanup(app.dependency_overrides.clear)
        self.analyze_payload = {
            "resumeText": "Jane Doe - Backend engineer with Python, Django and AWS experience.",
            "jobDescription": "We are hiring a backend engineer with Python, SQL and Kubernetes skills.",
            "purpose": "before-applying",
        }
        self.email_payload = {
            "emailDraft": "hi, thanks for the interview yesterday, hope to hear back soon",
            "purpose": "thank-you",
        }


class AnalyzeApiTests(AIApiTestCase):
    def test_analyze_returns_embedded_json_object(self):
        response = self.client.post("/api/analyze", json=self.analyze_payload)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(
            body["data"],
            {
                "matchScore": 72,
                "missingKeywords": ["SQL"],
                "suggestions": ["Add metrics"],
                "rewriteExamples": [],
                "overallFeedback": "Good",
            },
        )
        self.assertEqual(response.headers["X-Usage-Remaining"], "2")
        self.assertEqual(response.headers["X-Usage-Limit-Reached"], "false")
        self.assertNotIn("X-AI-Fallback", response.headers)

    def test_analyze_prompt_carries_inputs_and_purpose(self):
        payload = dict(self.analyze_payload, purpose="after-rejection")
        self.client.post("/api/analyze", json=payload)

        call = self.llm.calls[0]
        self.assertIn(payload["resumeText"], call["user_prompt"])
        self.assertIn(payload["jobDescription"], call["user_prompt"])
        self.assertIn("was rejected", call["user_prompt"])
        self.assertEqual(call["max_tokens"], 2000)

    def test_unparseable_reply_returns_fallback_with_success(self):
        self.llm.reply = "Sorry, I cannot help with that."

        response = self.client.post("/api/analyze", json=self.analyze_payload)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["data"]["matchScore"], 50)
        self.assertEqual(body["data"]["missingKeywords"], ["Unable to analyze - please try again"])
        self.assertEqual(response.headers["X-AI-Fallback"], "true")
        self.assertEqual(response.headers["X-AI-Fallback-Reason"], "no_json")

    def test_missing_field_is_rejected(self):
        payload = dict(self.analyze_payload)
        del payload["jobDescription"]

        response = self.client.post("/api/analyze", json=payload)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing required fields")
        self.assertEqual(self.llm.calls, [])

    def test_invalid_purpose_is_rejected(self):
        response = self.client.post("/api/analyze", json=dict(self.analyze_payload, purpose="for-fun"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid purpose")

    def test_short_texts_are_rejected(self):
        response = self.client.post("/api/analyze", json=dict(self.analyze_payload, resumeText="too short"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Resume too short")

        response = self.client.post("/api/analyze", json=dict(self.analyze_payload, jobDescription="short"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Job description too short")

    def test_wrong_field_type_is_a_bad_request(self):
        response = self.client.post("/api/analyze", json=dict(self.analyze_payload, resumeText=12345))
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["error"], "Invalid request")
        self.assertIn("resumeText", body["message"])

    def test_long_uploaded_resume_can_be_analyzed(self):
        uploaded = self.client.post(
            "/api/upload",
            files={"resume": ("resume.txt", b"Senior Python engineer. " * 2500, "text/plain")},
        )
        self.assertEqual(uploaded.status_code, 200)
        resume_text = uploaded.json()["text"]
        self.assertGreater(len(resume_text), 50000)

        response = self.client.post("/api/analyze", json=dict(self.analyze_payload, resumeText=resume_text))

        self.assertEqual(response.status_code, 200)
        self.assertIn(resume_text, self.llm.calls[0]["user_prompt"])
        self.assertEqual(self.store.current_usage("testclient"), 1)

    def test_missing_api_key_is_a_configuration_error(self):
        self.llm.error = LLMServiceError("OpenAI API key is missing or invalid.", code="llm_not_configured")

        response = self.client.post("/api/analyze", json=self.analyze_payload)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"error": "Configuration error", "message": "OpenAI API is not properly configured"},
        )

    def test_upstream_failure_hides_details_and_keeps_quota_spent(self):
        self.llm.error = LLMServiceError("OpenAI request failed: secret upstream trace", code="llm_exception")

        response = self.client.post("/api/analyze", json=self.analyze_payload)

        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertEqual(body["error"], "Analysis failed")
        self.assertNotIn("secret upstream trace", body["message"])
        self.assertEqual(self.store.current_usage("testclient"), 1)


class QuotaGateTests(AIApiTestCase):
    def test_fourth_request_of_the_day_is_rejected(self):
        for expected_remaining in ("2", "1", "0"):
            response = self.client.post("/api/analyze", json=self.analyze_payload)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.headers["X-Usage-Remaining"], expected_remaining)
        self.assertEqual(response.headers["X-Usage-Limit-Reached"], "true")

        response = self.client.post("/api/analyze", json=self.analyze_payload)

        self.assertEqual(response.status_code, 429)
        body = response.json()
        self.assertEqual(body["error"], "Usage limit exceeded")
        self.assertIn("daily limit of 3", body["message"])
        self.assertEqual(body["usage"], {"used": 3, "remaining": 0, "limit": 3, "canUse": False})
        self.assertEqual(body["upgrade"]["message"], "Upgrade to unlimited usage")
        self.assertIn("Unlimited resume analysis", body["upgrade"]["features"])
        self.assertTrue(body["upgrade"]["price"])
        self.assertEqual(len(self.llm.calls), 3)
        self.assertEqual(self.store.current_usage("testclient"), 3)

    def test_quota_is_shared_between_ai_endpoints(self):
        self.llm.reply = EMAIL_REPLY
        self.client.post("/api/improve-email", json=self.email_payload)
        self.client.post("/api/improve-email", json=self.email_payload)
        self.llm.reply = ANALYSIS_REPLY
        self.assertEqual(self.client.post("/api/analyze", json=self.analyze_payload).status_code, 200)

        response = self.client.post("/api/improve-email", json=self.email_payload)

        self.assertEqual(response.status_code, 429)

    def test_lost_increment_race_is_rejected(self):
        self.store = RacingStore(limit=3)

        response = self.client.post("/api/analyze", json=self.analyze_payload)

        self.assertEqual(response.status_code, 429)
        body = response.json()
        self.assertEqual(body["usage"]["remaining"], 0)
        self.assertFalse(body["usage"]["canUse"])
        self.assertIn("upgrade", body)
        self.assertEqual(self.llm.calls, [])

    def test_gate_fails_open_when_store_breaks(self):
        self.store = BrokenStatusStore(limit=3)

        with self.assertLogs("app.core.usage_gate", level="ERROR"):
            response = self.client.post("/api/analyze", json=self.analyze_payload)

        self.assertEqual(response.status_code, 200)
        self.assertNotIn("X-Usage-Remaining", response.headers)

    def test_forwarded_for_is_ignored_unless_trusted(self):
        headers = {"X-Forwarded-For": "203.0.113.9"}
        self.client.post("/api/analyze", json=self.analyze_payload, headers=headers)

        self.assertEqual(self.store.current_usage("testclient"), 1)
        self.assertEqual(self.store.current_usage("203.0.113.9"), 0)


class ImproveEmailApiTests(AIApiTestCase):
    def setUp(self):
        super().setUp()
        self.llm.reply = EMAIL_REPLY

    def test_improve_email_returns_parsed_result(self):
        response = self.client.post("/api/improve-email", json=self.email_payload)

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["tone"], "Warm")
        self.assertEqual(data["professionalismScore"], 88)
        self.assertIn("expressing gratitude", self.llm.calls[0]["user_prompt"])
        self.assertEqual(self.llm.calls[0]["max_tokens"], 1500)

    def test_invalid_email_shape_falls_back(self):
        self.llm.reply = '{"improvedEmail": "Hi", "explanation": "x", "improvements": "not a list", "tone": "calm"}'

        response = self.client.post("/api/improve-email", json=self.email_payload)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["tone"], "Professional")
        self.assertEqual(response.headers["X-AI-Fallback-Reason"], "invalid_shape")

    def test_email_validation_order(self):
        response = self.client.post("/api/improve-email", json={"purpose": "general"})
        self.assertEqual(response.json()["error"], "Missing required fields")

        response = self.client.post("/api/improve-email", json={"emailDraft": "hi there", "purpose": "bogus"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Email too short")

        response = self.client.post("/api/improve-email", json=dict(self.email_payload, purpose="bogus"))
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["error"], "Invalid purpose")
        self.assertIn("meeting-request", body["message"])

    def test_all_documented_purposes_are_accepted(self):
        purposes = [
            "job-followup",
            "apology",
            "client-pitch",
            "meeting-request",
            "thank-you",
            "complaint",
            "networking",
            "proposal",
            "general",
        ]
        self.store = InMemoryUsageStore(limit=len(purposes))
        for purpose in purposes:
            response = self.client.post("/api/improve-email", json=dict(self.email_payload, purpose=purpose))
            self.assertEqual(response.status_code, 200, purpose)

    def test_long_email_draft_is_accepted(self):
        draft = "Thank you for your time during the interview. " * 1500

        response = self.client.post("/api/improve-email", json=dict(self.email_payload, emailDraft=draft))

        self.assertEqual(response.status_code, 200)

    def test_email_upstream_failure(self):
        self.llm.error = LLMServiceError("No response from OpenAI", code="empty_response")

        response = self.client.post("/api/improve-email", json=self.email_payload)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Email improvement failed")


if __name__ == "__main__":
    unittest.main()
