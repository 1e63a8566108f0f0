import json
import logging
from tempfile import NamedTemporaryFile
from typing import List, Optional

import pdfplumber
from openai import OpenAI
from pydantic import BaseModel, ConfigDict, Field

from prismpath.config import get_settings, is_configured
from prismpath.services.llm import anonymize
from prismpath.utils.text import split_list_lines

logger = logging.getLogger(__name__)

MAX_DOCUMENT_CHARS = 20000


class EmptyDocumentError(ValueError):
    pass


class DocumentSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    summary: str = Field("", description="Plain-language summary of the plan document.")
    accommodations: List[str] = Field(default_factory=list, description="Accommodations listed in the document.")


def clean_model_output(candidate) -> dict:
    """Coerce the model's JSON into summary/accommodations, tolerating missing or odd fields."""
    if not isinstance(candidate, dict):
        return {"summary": "", "accommodations": []}

    summary = candidate.get("summary")
    if not isinstance(summary, str):
        summary = ""

    accommodations = candidate.get("accommodations")
    if isinstance(accommodations, str):
        accommodations = split_list_lines(accommodations)
    elif not isinstance(accommodations, list):
        accommodations = []

    return {
        "summary": summary.strip(),
        "accommodations": [str(a).strip() for a in accommodations if str(a).strip()],
    }


class DocumentSummarizer:
    def __init__(self):
        settings = get_settings()
        if not is_configured(settings.openai_api_key):
            raise RuntimeError("OPENAI_API_KEY not found in environment variables")

        self.client = OpenAI(api_key=settings.openai_api_key)
        self.model_name = settings.openai_model
        logger.info(f"Using OpenAI model: {self.model_name}")

    def extract_text_from_pdf_bytes(self, pdf_bytes: bytes) -> str:
        """Extract text from PDF bytes."""
        text_chunks = []

        with NamedTemporaryFile(suffix=".pdf", delete=True) as tmp_file:
            tmp_file.write(pdf_bytes)
            tmp_file.flush()

            try:
                with pdfplumber.open(tmp_file.name) as pdf:
                    for page in pdf.pages:
                        page_text = page.extract_text()
                        if page_text:
                            text_chunks.append(page_text)
            except Exception as e:
                logger.error(f"Error extracting text from PDF: {str(e)}")
                raise RuntimeError(f"Error extracting text from PDF: {str(e)}")

        return "\n".join(text_chunks)

    def get_raw_response(self, text: str) -> str:
        instructions = (
            "You are reading a student's IEP or 504 plan. Return valid JSON with these fields:\n"
            "1) summary (string, under 150 words, plain language for a classroom teacher)\n"
            "2) accommodations (array of strings, each one accommodation as written)\n\n"
            "Rules:\n"
            "- Refer to the student only as [Student].\n"
            "- If you can't find accommodations, return an empty list.\n"
            "- Return ONLY valid JSON. No markdown or extra text."
        )

        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": f"Plan Text:\n{text}"},
                ],
                temperature=0.3,
            )
            return response.choices[0].message.content.strip()
        except Exception as e:
            logger.error(f"Error calling OpenAI API: {str(e)}")
            raise RuntimeError(f"Error calling OpenAI API: {str(e)}")

    def summarize(self, pdf_bytes: bytes, student_name: Optional[str] = None) -> DocumentSummary:
        text = self.extract_text_from_pdf_bytes(pdf_bytes)
        logger.info(f"Extracted {len(text)} characters from PDF")
        if not text.strip():
            raise EmptyDocumentError("No text could be extracted from the PDF")

        raw_response = self.get_raw_response(anonymize(text, student_name)[:MAX_DOCUMENT_CHARS])
        if raw_response.startswith("```"):
            raw_response = raw_response.split("```")[1].removeprefix("json").strip()

        try:
            parsed_json = json.loads(raw_response)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON returned from model: {raw_response[:100]}...")
            raise RuntimeError(f"Invalid JSON returned from model: {str(e)}")

        return DocumentSummary(**clean_model_output(parsed_json))


def summarize_document(pdf_bytes: bytes, filename: str, student_name: Optional[str] = None) -> DocumentSummary:
    if not filename or not filename.lower().endswith(".pdf"):
        raise ValueError("File must be a PDF")
    return DocumentSummarizer().summarize(pdf_bytes, student_name)
