from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
import logging

from prismpath.dependencies.auth import current_user, user_context
from prismpath.services.document_summarizer import DocumentSummary, summarize_document

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_pdf(file: UploadFile):
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="File must be a PDF")


@router.post(
    "/parse",
    summary="Summarize plan PDF",
    description="Upload an IEP or 504 PDF and preview its summary and accommodations without saving.",
    response_model=DocumentSummary,
)
async def parse_document(file: UploadFile = File(...), user=Depends(current_user)):
    _require_pdf(file)

    pdf_bytes = await file.read()
    logger.info(f"Read {len(pdf_bytes)} bytes from uploaded PDF {file.filename}")
    return summarize_document(pdf_bytes, file.filename)


@router.post(
    "/student/{student_id}",
    summary="Upload plan PDF for a student",
    description="Summarize an uploaded PDF and store the summary as a document on the student.",
    status_code=201,
)
async def upload_document(student_id: str, file: UploadFile = File(...), context=Depends(user_context)):
    _require_pdf(file)
    service = context["service"]
    user = context["user"]

    student = service.get_student(student_id, user, audit=False)
    pdf_bytes = await file.read()
    logger.info(f"Read {len(pdf_bytes)} bytes from uploaded PDF {file.filename}")

    summary = summarize_document(pdf_bytes, file.filename, student_name=student.get("name"))
    return service.save_document(student_id, {
        "filename": file.filename,
        "content_type": file.content_type,
        "size_bytes": len(pdf_bytes),
        "summary": summary.summary,
        "accommodations": summary.accommodations,
    }, user)


@router.get("/student/{student_id}")
def get_documents(student_id: str, context=Depends(user_context)):
    return context["service"].get_documents(student_id, context["user"])
