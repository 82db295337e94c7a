# document_extraction.py
"""
Document extraction through the Gemini REST API.

Reads Dhan Delivery Orders, CMR Deposit Orders and Kanta Parchi (weighing
slips). Each call sends the document inline (base64) together with a JSON
response schema, so the model answers with a single JSON object. Any
failure is raised as ExtractionError with a message fit for the user; no
partially extracted data is ever returned.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Dict, Iterable, Optional

import requests

from errors import ExtractionError
from ledger_config import DEFAULT_GEMINI_MODEL, MAX_UPLOAD_BYTES, PDF_MIME_TYPES, gemini_settings
from logger import log_error, log_info
from records import ReleaseOrder

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

RO_VALIDATION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isDhanDeliveryOrder": {
            "type": "BOOLEAN",
            "description": "True if the document title is 'Dhan Delivery Order' or 'धान डिलेवरी आर्डर', false otherwise.",
        },
    },
    "required": ["isDhanDeliveryOrder"],
}

RO_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "doNo": {"type": "STRING", "description": "Delivery Order Number (e.g., 1224121212510046)"},
        "doDate": {"type": "STRING", "description": "Date of the Delivery Order (e.g., 12/Mar/2025)"},
        "lotNo": {"type": "STRING", "description": "The Lot Number from the table (e.g., Lot46.0000/2)"},
        "issueCenter": {"type": "STRING", "description": "The name of the issuing center or 'Praday Kendra' from the table (e.g., Satna Unit-II)"},
        "godown": {"type": "STRING", "description": "The name or location of the godown/warehouse from the table (e.g., JAMUNA WAREHOUSE NO. 25)"},
        "quantity": {"type": "STRING", "description": "The total quantity of paddy in Quintals from the table (e.g., 433.00)"},
        "validUpto": {"type": "STRING", "description": "The final validity date for a pickup (\"धान का उठाव सुनिश्चित करें\") (e.g., 22/Mar/2025)"},
        "uparjanVarsh": {"type": "STRING", "description": "The procurement year, labeled 'उपार्जन वर्ष' (e.g., '2023-24')."},
    },
    "required": ["doNo", "doDate", "lotNo", "issueCenter", "godown", "quantity", "validUpto", "uparjanVarsh"],
}

CMR_VALIDATION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isCmrDepositOrder": {
            "type": "BOOLEAN",
            "description": "True if the document title is 'CMR DEPOSIT ORDER' or 'सीएमआर जमा आदेश', false otherwise. It must not be a 'Dhan Delivery Order'.",
        },
    },
    "required": ["isCmrDepositOrder"],
}

CMR_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "doNo": {"type": "STRING", "description": "The Delivery Order Number (डी०ओ० क्रमांक) this CMR is generated against."},
        "orderNo": {"type": "STRING", "description": "The unique order or reference number (e.g., 'Order No.', 'CMR Deposit No.')."},
        "depositDate": {"type": "STRING", "description": "The date of the deposit order (e.g., 15/Apr/2025)."},
        "depositedAt": {"type": "STRING", "description": "The name of the godown or location where the rice is to be deposited (e.g., FCI, CWC)."},
    },
    "required": ["doNo", "orderNo", "depositDate", "depositedAt"],
}

WEIGHING_SLIP_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "rstNo": {"type": "STRING", "description": "The receipt or slip number, usually a 5-digit number at the top left of the slip (e.g., '12800', '12805')."},
        "truckNo": {"type": "STRING", "description": "The vehicle number, labelled as 'VEHICLE NO' (e.g., 'MP19HA4165')."},
        "liftedQuantityInKg": {"type": "STRING", "description": "The 'NET Wt' value in Kilograms. This is the third weight value listed (e.g., '22555')."},
        "numberOfBags": {"type": "STRING", "description": "The number of bags. This is often handwritten on the slip, sometimes with the word 'बोरी'. If not found, return an empty string."},
    },
    "required": ["rstNo", "truckNo", "liftedQuantityInKg", "numberOfBags"],
}

RO_VALIDATION_PROMPT = (
    'Analyze the title of this document. Is this document a "धान डिलेवरी आर्डर" (Dhan Delivery Order)? '
    'It is very important that it is not a "CMR DEPOSIT ORDER". Respond with true if it is a Dhan '
    "Delivery Order, and false otherwise."
)

RO_PROMPT = (
    "From the provided MPSCSC Paddy Delivery Order PDF, extract the following details precisely: "
    "1. 'डी०ओ० क्रमांक' as doNo; 2. 'डी०ओ० दिनाँक' as doDate; 3. 'Lot No.' from the table as lotNo; "
    "4. 'Issue Center' from the table as issueCenter; 5. 'Godown' from the table as godown; "
    "6. 'Quantity (Qtls)' from the table as quantity; 7. The final date mentioned in the 'प्रतिलिपि' "
    "section for ensuring pickup ('धान का उठाव सुनिश्चित करें') as validUpto; 8. The 'उपार्जन वर्ष' "
    "(procurement year) as uparjanVarsh. Provide the response in the requested JSON format."
)

CMR_VALIDATION_PROMPT = (
    'Analyze the title of this document. Is this document a "CMR DEPOSIT ORDER" or "सीएमआर जमा आदेश"? '
    "Respond with true if it is, and false otherwise."
)

CMR_PROMPT = (
    "From the provided CMR Deposit Order PDF, extract only these essential details: 1. The Delivery "
    "Order number it is issued against, often labeled 'डी०ओ० क्रमांक', as doNo; 2. The CMR order or "
    "reference number as orderNo; 3. The date of the order as depositDate; 4. The name of the godown "
    "or center where the rice should be deposited as depositedAt. Do not extract vehicle number or "
    "quantities. Provide the response in the requested JSON format."
)

WEIGHING_SLIP_PROMPT = """You are an expert OCR system for low-quality, dot-matrix printed Kanta Parchi (weighing slips). Analyze the image and extract the following:
1.  **rstNo**: Find the slip number. This is usually a 5-digit number at the top, sometimes to the left of the vehicle number (e.g., '12800', '12915').
2.  **truckNo**: Find the 'VEHICLE NO'. It looks like 'MP19HA4165' or 'UP64T8002'.
3.  **liftedQuantityInKg**: Find the 'NET Wt'. This is the third and lowest weight value, representing the net weight in Kilograms (kg). Extract only the numeric value.
4.  **numberOfBags**: Look for handwritten numbers on or near the slip, often circled or with the word 'बोरी' (bori). This is the number of bags. If no handwritten value is found, return an empty string for this field.
Return the response in the requested JSON format. Do not guess any values."""


def validate_upload(
    data: bytes,
    mime_type: str,
    accepted: Iterable[str] = PDF_MIME_TYPES,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> None:
    """Reject files of the wrong type or over the size limit before calling the API."""
    accepted = list(accepted)
    if mime_type not in accepted:
        if accepted == PDF_MIME_TYPES:
            raise ExtractionError("Please upload a valid PDF file.")
        raise ExtractionError("Please upload a valid image file (JPG, PNG).")
    if len(data) > max_bytes:
        raise ExtractionError(
            f"File is too large. Please upload a file smaller than {max_bytes // 1024 // 1024}MB."
        )


class GeminiDocumentExtractor:
    """Schema-constrained document reading with a Gemini model"""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        timeout: float = 60.0,
        http: Optional[Any] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.http = http or requests.Session()

    @classmethod
    def from_env(cls, http: Optional[Any] = None) -> "GeminiDocumentExtractor":
        settings = gemini_settings()
        return cls(settings["api_key"], settings["model"], settings["timeout"], http=http)

    def _generate(self, prompt: str, data: bytes, mime_type: str, schema: Dict) -> Dict:
        """Send one generateContent request and return the parsed JSON answer."""
        if not self.api_key:
            raise ExtractionError("Document extraction is not configured. Set GEMINI_API_KEY in the environment.")

        body = {
            "contents": [{
                "parts": [
                    {"text": prompt},
                    {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(data).decode("ascii")}},
                ],
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        response = self.http.post(
            GEMINI_ENDPOINT.format(model=self.model),
            params={"key": self.api_key},
            json=body,
            timeout=self.timeout,
        )
        response.raise_for_status()
        payload = response.json()
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
        parsed = json.loads(text.strip())
        if not isinstance(parsed, dict):
            raise ValueError("Model response is not a JSON object")
        return parsed

    def _call(self, prompt: str, data: bytes, mime_type: str, schema: Dict, failure_message: str) -> Dict:
        try:
            return self._generate(prompt, data, mime_type, schema)
        except ExtractionError:
            raise
        except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
            log_error(f"Gemini request failed ({failure_message}): {e}", exc_info=True)
            raise ExtractionError(failure_message) from e

    # ---------- Dhan Delivery Order ----------
    def is_dhan_delivery_order(self, data: bytes, mime_type: str = "application/pdf") -> bool:
        failure = "Failed to validate the RO document type."
        result = self._call(RO_VALIDATION_PROMPT, data, mime_type, RO_VALIDATION_SCHEMA, failure)
        if not isinstance(result.get("isDhanDeliveryOrder"), bool):
            log_error(f"Could not determine document type from AI response: {result}")
            raise ExtractionError(failure)
        return result["isDhanDeliveryOrder"]

    def extract_release_order(self, data: bytes, mime_type: str = "application/pdf") -> ReleaseOrder:
        failure = (
            "Failed to analyze the RO PDF. Please ensure it's a valid and clear document "
            "and includes 'उपार्जन वर्ष'."
        )
        result = self._call(RO_PROMPT, data, mime_type, RO_SCHEMA, failure)
        if not all(isinstance(result.get(k), str) for k in ("doNo", "lotNo", "uparjanVarsh")):
            log_error(f"Extracted RO data is not in the expected format: {result}")
            raise ExtractionError(failure)
        order = ReleaseOrder.from_dict(result)
        log_info(f"Extracted release order {order.do_no} ({order.godown}, {order.quantity} Qtls)")
        return order

    # ---------- CMR Deposit Order ----------
    def is_cmr_deposit_order(self, data: bytes, mime_type: str = "application/pdf") -> bool:
        failure = "Failed to validate the CMR document type."
        result = self._call(CMR_VALIDATION_PROMPT, data, mime_type, CMR_VALIDATION_SCHEMA, failure)
        if not isinstance(result.get("isCmrDepositOrder"), bool):
            log_error(f"Could not determine document type from AI response: {result}")
            raise ExtractionError(failure)
        return result["isCmrDepositOrder"]

    def extract_cmr_order(self, data: bytes, mime_type: str = "application/pdf") -> Dict[str, str]:
        failure = (
            "Failed to analyze the CMR Deposit Order PDF. Please ensure it's a valid and clear "
            "document and includes a DO Number."
        )
        result = self._call(CMR_PROMPT, data, mime_type, CMR_SCHEMA, failure)
        if not isinstance(result.get("orderNo"), str) or not isinstance(result.get("doNo"), str):
            log_error(f"Extracted CMR data is not in the expected format: {result}")
            raise ExtractionError(failure)
        return {
            "doNo": result["doNo"].strip(),
            "orderNo": result["orderNo"].strip(),
            "depositDate": str(result.get("depositDate") or ""),
            "depositedAt": str(result.get("depositedAt") or ""),
        }

    # ---------- Kanta Parchi ----------
    def extract_weighing_slip(self, data: bytes, mime_type: str) -> Dict[str, str]:
        failure = "Failed to analyze the weighing slip. Please check the image quality or enter the data manually."
        result = self._call(WEIGHING_SLIP_PROMPT, data, mime_type, WEIGHING_SLIP_SCHEMA, failure)
        return {key: str(result.get(key) or "") for key in WEIGHING_SLIP_SCHEMA["required"]}
