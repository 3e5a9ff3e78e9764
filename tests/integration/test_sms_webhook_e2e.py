"""
End-to-end tests for the SMS donation webhook.

Drives the FastAPI app with Twilio-shaped form posts and a mocked
Cardknox gateway.
"""

import json
import xml.etree.ElementTree as ET

import pytest

from donation_server.flows.constants import SMS_FAILURE_MESSAGE, SMS_PROMPTS, SMSStep
from donation_server.storage import event_log, session_store

SENDER = "+15551234567"
SMS_URL = "/api/v1/webhook/sms"


def send_sms(client, body: str, sender: str = SENDER):
    """Post a Twilio SMS webhook and return the reply text."""
    response = client.post(
        SMS_URL,
        data={"MessageSid": "SM123", "From": sender, "To": "+15557654321", "Body": body},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")

    root = ET.fromstring(response.content)
    messages = root.findall("Message")
    assert len(messages) == 1
    return messages[0].text


class TestSmsDonationFlow:
    """Complete SMS conversations."""

    def test_full_flow_approved(self, test_client, use_gateway, approving_gateway, gateway_requests):
        use_gateway(approving_gateway)

        assert send_sms(test_client, "$25") == SMS_PROMPTS[SMSStep.AWAITING_CARD]
        assert send_sms(test_client, "4111 1111 1111 1111") == SMS_PROMPTS[SMSStep.AWAITING_EXPIRY]
        assert send_sms(test_client, "1225") == SMS_PROMPTS[SMSStep.AWAITING_CVV]
        assert send_sms(test_client, "123") == SMS_PROMPTS[SMSStep.AWAITING_ZIP]

        reply = send_sms(test_client, "90210")

        assert "25" in reply
        assert "A1B2" in reply
        assert session_store.get(SENDER) is None

        body = json.loads(gateway_requests[0].content)
        assert body["xAmount"] == "25"
        assert body["xCardNum"] == "4111111111111111"
        assert body["xExp"] == "1225"
        assert body["xCVV"] == "123"
        assert body["xZip"] == "90210"

    def test_declined_starts_over(self, test_client, use_gateway, declining_gateway):
        use_gateway(declining_gateway)

        for body in ["10", "4111111111111111", "1225", "123"]:
            send_sms(test_client, body)

        assert send_sms(test_client, "90210") == SMS_FAILURE_MESSAGE
        assert session_store.get(SENDER) is None

        assert send_sms(test_client, "15") == SMS_PROMPTS[SMSStep.AWAITING_CARD]

    def test_gateway_unreachable(self, test_client, use_gateway, unreachable_gateway):
        use_gateway(unreachable_gateway)

        for body in ["10", "4111111111111111", "1225", "123"]:
            send_sms(test_client, body)

        assert send_sms(test_client, "90210") == SMS_FAILURE_MESSAGE
        assert session_store.get(SENDER) is None

    def test_invalid_input_reprompts(self, test_client):
        send_sms(test_client, "10")

        reply = send_sms(test_client, "12")

        assert "Invalid credit card number" in reply
        assert session_store.get(SENDER).step == SMSStep.AWAITING_CARD

    def test_event_log_never_holds_card_data(self, test_client, use_gateway, approving_gateway):
        use_gateway(approving_gateway)

        for body in ["10", "4111111111111111", "1225", "987", "90210"]:
            send_sms(test_client, body)

        stored = [entry.data for entry in event_log.entries()]
        assert "4111111111111111" not in stored
        assert "1225" not in stored
        assert "987" not in stored
        assert "************1111" in stored

    def test_processor_failure_replies_generic_error(self, test_client, mocker):
        mocker.patch(
            "donation_server.flows.sms_processor.SMSProcessor.process",
            side_effect=RuntimeError("boom"),
        )

        assert send_sms(test_client, "10") == SMS_FAILURE_MESSAGE

    @pytest.mark.parametrize("body", ["", "   "])
    def test_empty_body_asks_for_amount(self, test_client, body):
        assert send_sms(test_client, body) == SMS_PROMPTS[SMSStep.AWAITING_AMOUNT]
