import json
from datetime import datetime, timezone
from typing import Dict
from uuid import uuid4


class MockPaymentAdapter:
    """
    Stand-in for a payment gateway. Nothing leaves the process: it only
    issues transaction id placeholders and refund records that get stored
    alongside the Payment rows.
    """

    prefix = "mock"

    def new_transaction_id(self) -> str:
        return f"{self.prefix}-{uuid4().hex}"

    def refund(self, transaction_id: str, amount) -> Dict:
        """Simulates a refund of a captured transaction."""
        return {
            "refund_id": f"refund-{uuid4().hex}",
            "status": "refunded",
            "transaction_id": transaction_id,
            "amount": str(amount),
            "refunded_at": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def gateway_response(record: Dict) -> str:
        return json.dumps(record, sort_keys=True)
