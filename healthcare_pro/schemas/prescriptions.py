# healthcare_pro/schemas/prescriptions.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from healthcare_pro.schemas.symptoms import WorkflowOut


class PrescriptionRequest(BaseModel):
    prescription_text: str = Field(..., description="Prescription text, typed or pasted from OCR output.")
    analysis_type: str = "full"
    use_profile: bool = True


class PrescriptionOut(WorkflowOut):
    analysis_type: str
    result: Optional[Dict[str, Any]] = None
    analysis_id: Optional[str] = None


class InteractionRequest(BaseModel):
    medications: List[str] = Field(..., min_length=1)


class MedicationLookupRequest(BaseModel):
    medication_name: str
