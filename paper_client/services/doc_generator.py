"""
Document Generator Service
Renders a composed question paper to a printable .docx file.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from docx import Document
from docx.shared import Pt

from paper_client.schemas import AnswerKeyEntry, Question, QuestionPaper, Section
from paper_client.services.composer import describe_section_marks, format_question_type

logger = logging.getLogger(__name__)

AnswerLookup = Callable[[str], Optional[AnswerKeyEntry]]


def _format_date(value: Optional[str]) -> str:
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d %b %Y")
    except ValueError:
        return value


def _fill_question_cell(cell, question: Question, lookup: Optional[AnswerLookup]) -> None:
    cell.text = question.question_text

    for index, option in enumerate(question.options):
        cell.add_paragraph(f"{chr(ord('a') + index)}. {option}")

    if lookup is None:
        return
    entry = lookup(question.id)
    if entry is None:
        return

    p_answer = cell.add_paragraph()
    p_answer.add_run("Answer: ").bold = True
    p_answer.add_run(entry.correct_answer)
    if entry.explanation:
        p_explanation = cell.add_paragraph()
        p_explanation.add_run("Explanation: ").italic = True
        p_explanation.add_run(entry.explanation)


def render_paper_docx(
    paper: QuestionPaper,
    sections: List[Section],
    output_path: Union[str, Path],
    lookup: Optional[AnswerLookup] = None,
) -> Path:
    """
    Generates a .docx file from a composed paper.

    Args:
        paper: The paper whose header details are printed.
        sections: Sections composed from the paper's questions.
        output_path: Where the .docx file should be saved.
        lookup: Answer lookup; when given, answers are printed under each question.

    Returns:
        The path written.
    """
    output_path = Path(output_path)
    logger.info("Rendering paper %s to %s", paper.id, output_path)
    doc = Document()

    core_properties = doc.core_properties
    core_properties.title = "Question Paper"
    core_properties.subject = paper.course_name

    style = doc.styles['Normal']
    style.font.size = Pt(12)

    heading = doc.add_heading("Question Paper", 0)
    heading.alignment = 1  # Center

    p_meta = doc.add_paragraph()
    p_meta.add_run("Course: ").bold = True
    p_meta.add_run(paper.course_name)
    p_meta.add_run("\nPaper ID: ").bold = True
    p_meta.add_run(f"#{paper.id}")
    p_meta.add_run("\nTotal Marks: ").bold = True
    p_meta.add_run(str(paper.total_marks))
    p_meta.add_run("\nTotal Questions: ").bold = True
    p_meta.add_run(str(paper.total_questions))
    p_meta.add_run("\nDate: ").bold = True
    p_meta.add_run(_format_date(paper.generated_at))

    doc.add_heading("Instructions:", level=3)
    for line in (
        "Answer all questions",
        f"Total marks: {paper.total_marks}",
        "Write your answers clearly and concisely",
    ):
        doc.add_paragraph(line, style="List Bullet")

    for section in sections:
        doc.add_heading(
            f"Part {section.label} – {format_question_type(section.type)} "
            f"({describe_section_marks(section)})",
            level=2,
        )

        table = doc.add_table(rows=1, cols=4)
        table.style = 'Table Grid'
        hdr_cells = table.rows[0].cells
        hdr_cells[0].text = 'Q. No.'
        hdr_cells[1].text = 'Questions'
        hdr_cells[2].text = 'CO'
        hdr_cells[3].text = 'BL'

        for number, question in enumerate(section.questions, start=1):
            row_cells = table.add_row().cells
            row_cells[0].text = f"{number}."
            _fill_question_cell(row_cells[1], question, lookup)
            row_cells[2].text = question.course_outcome or "-"
            row_cells[3].text = question.blooms_level or "-"

    doc.add_paragraph("End of Question Paper").alignment = 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(output_path))
    return output_path
