"""
Main FastAPI Application
Viewer layer that drives the review sessions, listings and generation form
against the question-paper backend.
"""
import asyncio
import logging
import os
from typing import AsyncIterator, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, Response
from pydantic import BaseModel

from paper_client.config import (
    DEFAULT_PAGE_LIMIT,
    MAX_MARKS_PER_QUESTION,
    MAX_QUESTIONS_PER_RULE,
    get_output_dir,
)
from paper_client.errors import DeleteError, FetchError, PaperNotReadyError, RuleValidationError
from paper_client.schemas import DifficultyDistribution, Section, UnitDistribution
from paper_client.services.api_client import PaperServiceClient
from paper_client.services.composer import describe_section_marks, format_question_type
from paper_client.services.listing import paper_listing, syllabus_listing
from paper_client.services.review_session import ReviewSession, SessionState
from paper_client.services.rule_set import GenerationRuleSet

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


async def get_backend_client() -> AsyncIterator[PaperServiceClient]:
    client = PaperServiceClient()
    try:
        yield client
    finally:
        await client.aclose()


class RuleInput(BaseModel):
    type: str
    marks: int
    count: int


class GenerateForm(BaseModel):
    syllabus_id: Optional[str] = None
    rules: Optional[List[RuleInput]] = None
    difficulty_distribution: Optional[DifficultyDistribution] = None
    unit_distribution: UnitDistribution = UnitDistribution.EQUAL
    include_answers: bool = True
    randomize_options: bool = True


class SyllabusText(BaseModel):
    course_name: str
    content: str


# Initialize FastAPI App
app = FastAPI(
    title="Question Paper Client",
    description="Compose, review and print question papers generated from a syllabus",
    version="1.0.0"
)

# CORS Middleware (Allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _fetch_failed(error: FetchError) -> HTTPException:
    status_code = 404 if error.status_code == 404 else 502
    return HTTPException(status_code=status_code, detail=error.message)


def build_rule_set(form: GenerateForm) -> GenerationRuleSet:
    """
    Turn the submitted form into a rule set, enforcing the form's input bounds.

    Raises:
        RuleValidationError: If any rule is out of bounds or invalid.
    """
    if form.rules is None:
        rule_set = GenerationRuleSet()
    else:
        rule_set = GenerationRuleSet(rules=[])
        for rule in form.rules:
            if rule.marks > MAX_MARKS_PER_QUESTION:
                raise RuleValidationError(f"marks must be at most {MAX_MARKS_PER_QUESTION}")
            if rule.count > MAX_QUESTIONS_PER_RULE:
                raise RuleValidationError(f"count must be at most {MAX_QUESTIONS_PER_RULE}")
            rule_set.add_rule(**rule.model_dump())

    if form.difficulty_distribution is not None:
        rule_set.difficulty_distribution = form.difficulty_distribution
    rule_set.unit_distribution = form.unit_distribution
    rule_set.include_answers = form.include_answers
    rule_set.randomize_options = form.randomize_options
    return rule_set


def render_section(section: Section, session: ReviewSession) -> dict:
    questions = []
    for number, question in enumerate(section.questions, start=1):
        entry = session.lookup(question.id)
        questions.append({
            "number": number,
            **question.model_dump(),
            "answer": entry.model_dump() if entry else None,
        })

    return {
        "label": section.label,
        "type": section.type,
        "title": f"Part {section.label} – {format_question_type(section.type)}",
        "marks_summary": describe_section_marks(section),
        "subtotal": section.subtotal,
        "questions": questions,
    }


def render_session(session: ReviewSession) -> dict:
    """View model of a loaded session: paper header, sections and overlay state."""
    paper = session.paper
    return {
        "state": session.state.value,
        "key_state": session.key_state.value,
        "evaluation_mode": session.evaluation_mode,
        "paper": paper.model_dump(exclude={"questions"}),
        "sections": [render_section(section, session) for section in session.sections],
    }


async def open_session(client: PaperServiceClient, paper_id: str, evaluation: bool) -> ReviewSession:
    """Start a session and, in evaluation mode, wait for the answer key."""
    session = ReviewSession(client, paper_id)
    await session.start()
    if session.state is SessionState.PAPER_ERROR:
        session.close()
        raise _fetch_failed(FetchError(session.error or "Failed to fetch question paper", session.error_status))

    if evaluation:
        session.set_evaluation_mode(True)
        await session.wait_for_answer_key()
    return session


@app.get("/")
async def read_root():
    """Return API status info."""
    return {"message": "Question Paper Client is running."}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Question Paper Client"}


@app.get("/dashboard")
async def dashboard(client: PaperServiceClient = Depends(get_backend_client)):
    """Totals for the syllabus and paper lists."""
    syllabi = syllabus_listing(client)
    papers = paper_listing(client)
    await asyncio.gather(syllabi.refresh(), papers.refresh())
    error = syllabi.error or papers.error
    if error:
        raise HTTPException(status_code=502, detail=error)
    return {"total_syllabi": len(syllabi.items), "total_papers": len(papers.items)}


# --- Syllabi ---

@app.get("/syllabi")
async def list_syllabi(
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1),
    client: PaperServiceClient = Depends(get_backend_client),
):
    listing = syllabus_listing(client, limit=limit)
    await listing.refresh()
    if listing.error:
        raise HTTPException(status_code=502, detail=listing.error)
    return {"items": listing.items, "total": len(listing.items)}


@app.get("/syllabi/{syllabus_id}")
async def get_syllabus(syllabus_id: str, client: PaperServiceClient = Depends(get_backend_client)):
    try:
        return await client.get_syllabus(syllabus_id)
    except FetchError as e:
        raise _fetch_failed(e)


@app.delete("/syllabi/{syllabus_id}")
async def delete_syllabus(syllabus_id: str, client: PaperServiceClient = Depends(get_backend_client)):
    try:
        return await client.delete_syllabus(syllabus_id) or {"message": "Syllabus deleted"}
    except DeleteError as e:
        raise _fetch_failed(e)


@app.post("/syllabi/upload/text")
async def upload_syllabus_text(body: SyllabusText, client: PaperServiceClient = Depends(get_backend_client)):
    if not body.course_name.strip() or not body.content.strip():
        raise HTTPException(status_code=422, detail="course_name and content are required")
    try:
        return await client.upload_syllabus_text(body.course_name, body.content)
    except FetchError as e:
        raise _fetch_failed(e)


@app.post("/syllabi/upload/file")
async def upload_syllabus_file(
    file: UploadFile = File(..., description="Syllabus PDF"),
    course_name: str = Form(..., description="Course name"),
    client: PaperServiceClient = Depends(get_backend_client),
):
    if file.content_type != "application/pdf":
        raise HTTPException(status_code=422, detail="Please select a PDF file")
    content = await file.read()
    try:
        return await client.upload_syllabus_file(file.filename or "syllabus.pdf", content, course_name)
    except FetchError as e:
        raise _fetch_failed(e)


# --- Question papers ---

@app.get("/papers")
async def list_papers(
    syllabus_id: Optional[str] = None,
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1),
    client: PaperServiceClient = Depends(get_backend_client),
):
    listing = paper_listing(client, syllabus_id=syllabus_id, limit=limit)
    await listing.refresh()
    if listing.error:
        raise HTTPException(status_code=502, detail=listing.error)
    return {"items": listing.items, "total": len(listing.items)}


@app.delete("/papers/{paper_id}")
async def delete_paper(paper_id: str, client: PaperServiceClient = Depends(get_backend_client)):
    try:
        return await client.delete_paper(paper_id) or {"message": "Question paper deleted"}
    except DeleteError as e:
        raise _fetch_failed(e)


@app.post("/papers/generate")
async def generate_paper(form: GenerateForm, client: PaperServiceClient = Depends(get_backend_client)):
    """
    Validate the generation form and ask the backend for a paper.

    Rule problems answer 422 before the backend is called; backend
    failures answer 502 with the backend's message.
    """
    try:
        request = build_rule_set(form).to_request(form.syllabus_id)
    except RuleValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    logger.info("Requesting %d-mark paper for syllabus %s", request.total_marks, request.syllabus_id)
    try:
        paper = await client.generate_paper(request)
    except FetchError as e:
        raise HTTPException(status_code=502, detail=e.message)

    return {"paper": paper, "view_url": f"/papers/{paper.id}"}


@app.get("/papers/{paper_id}")
async def view_paper(
    paper_id: str,
    evaluation: bool = False,
    client: PaperServiceClient = Depends(get_backend_client),
):
    """Composed paper, with answers inline when `evaluation` is set and the key is available."""
    session = await open_session(client, paper_id, evaluation)
    try:
        return render_session(session)
    finally:
        session.close()


@app.get("/papers/{paper_id}/print")
async def print_paper(
    paper_id: str,
    evaluation: bool = False,
    client: PaperServiceClient = Depends(get_backend_client),
):
    """Render the composed paper to .docx and return the file."""
    session = await open_session(client, paper_id, evaluation)
    output_dir = get_output_dir()
    suffix = "-evaluation" if evaluation else ""
    output_filename = f"question-paper-{paper_id}{suffix}-{os.urandom(4).hex()}.docx"
    try:
        output_path = session.print_paper(output_dir / output_filename)
    except PaperNotReadyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    finally:
        session.close()

    return FileResponse(str(output_path), filename=output_filename, media_type=DOCX_MEDIA_TYPE)


@app.get("/papers/{paper_id}/answer-key")
async def view_answer_key(paper_id: str, client: PaperServiceClient = Depends(get_backend_client)):
    """
    Standalone answer key: paper details plus every entry in key order.

    Unlike the evaluation overlay, a failed fetch is reported to the caller.
    """
    try:
        answer_key = await client.get_answer_key(paper_id)
    except FetchError as e:
        raise _fetch_failed(e)

    return {
        **answer_key.model_dump(exclude={"answers"}),
        "answers": [
            {"label": f"Q{entry.question_number}", **entry.model_dump()}
            for entry in answer_key.answers
        ],
    }


@app.get("/papers/{paper_id}/pdf")
async def download_pdf(
    paper_id: str,
    include_answers: bool = False,
    client: PaperServiceClient = Depends(get_backend_client),
):
    try:
        content = await client.download_pdf(paper_id, include_answers=include_answers)
    except FetchError as e:
        raise _fetch_failed(e)

    filename = f"question-paper-{paper_id}.pdf"
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8080)
