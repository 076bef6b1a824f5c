from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

class CreatePaymentIntentRequest(BaseModel):
    course_id: str = Field(min_length=1)
    schedule_id: Optional[str] = None
    # Montant en euros (unités majeures), converti en centimes pour Stripe
    amount: float = Field(gt=0)

PAYMENT_METHOD_LABELS = {
    "ideal": "iDEAL",
    "card": "Creditcard",
}

def payment_method_display(method: Optional[str]) -> str:
    return PAYMENT_METHOD_LABELS.get(method or "", method or "")
