import pytest

from prismpath.routes import documents
from prismpath.services.document_summarizer import (
    DocumentSummarizer,
    DocumentSummary,
    EmptyDocumentError,
    clean_model_output,
    summarize_document,
)


def pdf_upload(name="plan.pdf"):
    return {"file": (name, b"%PDF-1.4 fake", "application/pdf")}


class TestCleanModelOutput:
    def test_well_formed(self):
        assert clean_model_output({"summary": " Short ", "accommodations": ["Extended time", " "]}) == {
            "summary": "Short",
            "accommodations": ["Extended time"],
        }

    def test_string_accommodations_are_split(self):
        result = clean_model_output({"summary": "s", "accommodations": "1. Extra time\n2. Quiet room"})
        assert result["accommodations"] == ["Extra time", "Quiet room"]

    def test_bad_shapes(self):
        assert clean_model_output(["not", "a", "dict"]) == {"summary": "", "accommodations": []}
        assert clean_model_output({"summary": 3, "accommodations": None}) == {"summary": "", "accommodations": []}


class StubSummarizer(DocumentSummarizer):
    def __init__(self, text, reply):
        self.text = text
        self.reply = reply
        self.prompts = []

    def extract_text_from_pdf_bytes(self, pdf_bytes):
        return self.text

    def get_raw_response(self, text):
        self.prompts.append(text)
        return self.reply


class TestSummarize:
    def test_fenced_json_and_anonymization(self):
        summarizer = StubSummarizer(
            "Alex receives extended time.",
            '```json\n{"summary": "[Student] gets extra time.", "accommodations": ["Extended time"]}\n```',
        )
        result = summarizer.summarize(b"pdf", student_name="Alex")

        assert result == DocumentSummary(summary="[Student] gets extra time.", accommodations=["Extended time"])
        assert summarizer.prompts == ["[Student] receives extended time."]

    def test_empty_document(self):
        with pytest.raises(EmptyDocumentError):
            StubSummarizer("   ", "{}").summarize(b"pdf")

    def test_invalid_json(self):
        with pytest.raises(RuntimeError, match="Invalid JSON"):
            StubSummarizer("text", "not json").summarize(b"pdf")

    def test_requires_pdf_name(self):
        with pytest.raises(ValueError):
            summarize_document(b"x", "notes.docx")

    def test_requires_openai_key(self):
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            DocumentSummarizer()


class TestDocumentRoutes:
    def test_non_pdf_rejected(self, client, teacher_headers):
        files = {"file": ("notes.txt", b"hello", "text/plain")}
        assert client.post("/documents/parse", files=files, headers=teacher_headers).status_code == 400

    def test_parse_requires_auth(self, client):
        assert client.post("/documents/parse", files=pdf_upload()).status_code == 401

    def test_empty_pdf_is_unprocessable(self, client, teacher_headers, monkeypatch):
        def empty(*args, **kwargs):
            raise EmptyDocumentError("No text could be extracted from the PDF")

        monkeypatch.setattr(documents, "summarize_document", empty)
        response = client.post("/documents/parse", files=pdf_upload(), headers=teacher_headers)
        assert response.status_code == 422
        assert response.json()["detail"] == "No text could be extracted from the PDF"

    def test_missing_ai_key_is_server_error(self, client, teacher_headers):
        response = client.post("/documents/parse", files=pdf_upload(), headers=teacher_headers)
        assert response.status_code == 500

    def test_upload_saves_document(self, client, teacher_headers, monkeypatch):
        seen = {}

        def fake_summarize(pdf_bytes, filename, student_name=None):
            seen["student_name"] = student_name
            return DocumentSummary(summary="Reading support", accommodations=["Audiobooks"])

        monkeypatch.setattr(documents, "summarize_document", fake_summarize)
        response = client.post("/documents/student/student-1", files=pdf_upload("iep.pdf"), headers=teacher_headers)

        assert response.status_code == 201
        saved = response.json()
        assert saved["filename"] == "iep.pdf"
        assert saved["accommodations"] == ["Audiobooks"]
        assert saved["size_bytes"] == len(b"%PDF-1.4 fake")
        assert seen["student_name"] == "Alex"

        listed = client.get("/documents/student/student-1", headers=teacher_headers).json()
        assert [d["filename"] for d in listed] == ["iep.pdf"]

    def test_upload_checks_access(self, client, parent_headers):
        response = client.post("/documents/student/student-1", files=pdf_upload(), headers=parent_headers)
        assert response.status_code == 403
