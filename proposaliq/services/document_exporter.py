"""
제안서 문서 내보내기 서비스입니다.

선택한 섹션을 Word(python-docx) 또는 PDF(reportlab)로 만들고,
비공개 저장소에 올린 뒤 7일짜리 서명 URL과 ExportHistory 기록을 남깁니다.
승인 전 상태의 제안서에는 DRAFT 워터마크가 들어갑니다.
"""

import io
import json
import logging
import re
import time
import zipfile
from datetime import timedelta
from typing import Optional
from xml.sax.saxutils import escape

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer

from proposaliq.config import Settings, get_settings
from proposaliq.exceptions import ExportError, InputValidationError, NotFoundError
from proposaliq.models.entities import ExportHistory, Proposal, ProposalSection, User
from proposaliq.models.export import BatchExportRequest, ExportOptions, ExportRequest
from proposaliq.services.entity_store import EntityStore, get_entity_store
from proposaliq.services.file_storage import FileStorage, get_file_storage
from proposaliq.utils.dates import utcnow
from proposaliq.utils.validation import validate_document_count

logger = logging.getLogger(__name__)

APPROVED_STATUSES = ("approved", "submitted", "won", "client_accepted")
EXPORT_FORMATS = ("docx", "pdf")
DRAFT_BANNER = "*** DRAFT VERSION - FOR REVIEW ONLY ***"
EMPTY_SECTION_TEXT = "[Content not available]"

_HTML_TAG = re.compile(r"<[^>]*>")
_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def needs_watermark(status: Optional[str]) -> bool:
    return status not in APPROVED_STATUSES


def content_paragraphs(content: Optional[str]) -> list[str]:
    """HTML 태그를 제거하고 빈 줄 기준으로 문단을 나눕니다."""
    if not content:
        return []
    plain = _HTML_TAG.sub("", content).strip()
    return [p.strip() for p in plain.split("\n\n") if p.strip()]


def export_file_name(proposal_name: str, extension: str) -> str:
    safe_name = _UNSAFE_NAME_CHARS.sub("_", proposal_name)[:50]
    return f"{safe_name}_{utcnow().date().isoformat()}.{extension}"


def _cover_lines(proposal: Proposal) -> list[str]:
    return [v for v in (proposal.project_title, proposal.agency_name, proposal.solicitation_number) if v]


def render_docx(
    proposal: Proposal, sections: list[ProposalSection], watermark: bool, options: ExportOptions
) -> bytes:
    doc = Document()
    section_props = doc.sections[0]
    for side in ("top_margin", "right_margin", "bottom_margin", "left_margin"):
        setattr(section_props, side, Inches(1))

    if watermark:
        header_para = section_props.header.paragraphs[0]
        header_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = header_para.add_run("DRAFT")
        run.bold = True
        run.font.size = Pt(36)
        run.font.color.rgb = RGBColor(0xCC, 0xCC, 0xCC)

    if options.include_cover_page:
        title = doc.add_heading(proposal.proposal_name, level=0)
        title.alignment = WD_ALIGN_PARAGRAPH.CENTER
        for line in _cover_lines(proposal) + [f"Generated: {utcnow().date().isoformat()}"]:
            doc.add_paragraph(line).alignment = WD_ALIGN_PARAGRAPH.CENTER
        if watermark:
            banner = doc.add_paragraph()
            banner.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = banner.add_run(DRAFT_BANNER)
            run.bold = True
            run.font.color.rgb = RGBColor(0xFF, 0x66, 0x00)

    if options.include_table_of_contents:
        doc.add_page_break()
        doc.add_heading("Table of Contents", level=1)
        for index, section in enumerate(sections, start=1):
            doc.add_paragraph(f"{index}. {section.section_name}")

    for section in sections:
        doc.add_page_break()
        doc.add_heading(section.section_name, level=1)
        paragraphs = content_paragraphs(section.content)
        if not paragraphs:
            run = doc.add_paragraph().add_run(EMPTY_SECTION_TEXT)
            run.italic = True
            run.font.color.rgb = RGBColor(0x99, 0x99, 0x99)
        for para in paragraphs:
            doc.add_paragraph(para)

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def _draw_watermark(canvas, doc):
    canvas.saveState()
    canvas.setFillColor(colors.Color(0.78, 0.78, 0.78, alpha=0.15))
    canvas.setFont("Helvetica-Bold", 80)
    width, height = doc.pagesize
    canvas.translate(width / 2, height / 2)
    canvas.rotate(45)
    canvas.drawCentredString(0, 0, "DRAFT")
    canvas.restoreState()


def _no_decoration(canvas, doc):
    pass


def render_pdf(
    proposal: Proposal, sections: list[ProposalSection], watermark: bool, options: ExportOptions
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=inch,
        leftMargin=inch,
        topMargin=inch,
        bottomMargin=inch,
        title=proposal.proposal_name,
    )

    styles = getSampleStyleSheet()
    centered = ParagraphStyle("Centered", parent=styles["Normal"], alignment=1, fontSize=14, spaceAfter=10)
    banner_style = ParagraphStyle(
        "Banner", parent=styles["Normal"], alignment=1, fontSize=12, textColor=colors.Color(1, 0.4, 0)
    )
    empty_style = ParagraphStyle("Empty", parent=styles["Italic"], textColor=colors.grey)
    story = []

    if options.include_cover_page:
        story.append(Paragraph(escape(proposal.proposal_name), styles["Title"]))
        for line in _cover_lines(proposal):
            story.append(Paragraph(escape(line), centered))
        story.append(Spacer(1, 10))
        story.append(Paragraph(f"Generated: {utcnow().date().isoformat()}", centered))
        if watermark:
            story.append(Spacer(1, 20))
            story.append(Paragraph(f"<b>{DRAFT_BANNER}</b>", banner_style))
        story.append(PageBreak())

    if options.include_table_of_contents:
        story.append(Paragraph("Table of Contents", styles["Heading1"]))
        for index, section in enumerate(sections, start=1):
            story.append(Paragraph(f"{index}. {escape(section.section_name)}", styles["Normal"]))
        story.append(PageBreak())

    for section in sections:
        story.append(Paragraph(escape(section.section_name), styles["Heading2"]))
        paragraphs = content_paragraphs(section.content)
        if not paragraphs:
            story.append(Paragraph(EMPTY_SECTION_TEXT, empty_style))
        for para in paragraphs:
            story.append(Paragraph(escape(para).replace("\n", "<br/>"), styles["Normal"]))
            story.append(Spacer(1, 6))
        story.append(Spacer(1, 14))

    decorate = _draw_watermark if watermark else _no_decoration
    doc.build(story, onFirstPage=decorate, onLaterPages=decorate)
    return buffer.getvalue()


RENDERERS = {"docx": render_docx, "pdf": render_pdf}


class DocumentExporter:
    def __init__(
        self,
        store: Optional[EntityStore] = None,
        files: Optional[FileStorage] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store or get_entity_store()
        self.files = files or get_file_storage()
        self.settings = settings or get_settings()

    async def export(self, request: ExportRequest, user: User) -> dict:
        if not request.proposal_id or request.section_ids is None or not request.format:
            raise InputValidationError("Missing required parameters: proposal_id, section_ids, format")
        export_format = self._check_format(request.format)

        proposal = await self.store.get(Proposal, request.proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found", details={"proposal_id": request.proposal_id})

        wanted = set(request.section_ids)
        sections = await self.store.filter(ProposalSection, {"proposal_id": proposal.id}, sort="order")
        sections = [s for s in sections if s.id in wanted]
        if not sections:
            raise InputValidationError("No valid sections found")

        record, _ = await self._render_and_store(
            proposal, sections, export_format, request.options, request.template_id, user
        )
        return {
            "success": True,
            "export_id": record.id,
            "file_name": record.file_name,
            "file_size_bytes": record.file_size_bytes,
            "download_url": record.download_url,
            "expires_at": record.expires_at.isoformat(),
            "has_watermark": record.has_watermark,
            "proposal_status": proposal.status,
        }

    async def export_batch(self, request: BatchExportRequest, user: User) -> dict:
        """여러 제안서를 각각 내보내고 ZIP 하나로 묶습니다. 제안서별 실패는 errors로 모읍니다."""
        if not request.proposal_ids or not request.format:
            raise InputValidationError("Missing required parameters: proposal_ids, format")
        export_format = self._check_format(request.format)
        validate_document_count(len(request.proposal_ids))

        proposals = await self.store.filter(Proposal, {"id": {"$in": request.proposal_ids}})
        if not proposals:
            raise NotFoundError("No proposals found")

        zip_buffer = io.BytesIO()
        records = []
        errors = []
        with zipfile.ZipFile(zip_buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            for proposal in proposals:
                try:
                    sections = await self.store.filter(
                        ProposalSection, {"proposal_id": proposal.id}, sort="order"
                    )
                    record, content = await self._render_and_store(
                        proposal, sections, export_format, request.options, request.template_id, user
                    )
                except Exception as e:
                    logger.error(f"[Exporter] 일괄 내보내기 실패 {proposal.id}: {e}", exc_info=True)
                    errors.append({"proposal_id": proposal.id, "error": str(e)})
                    continue
                archive.writestr(record.file_name, content)
                records.append(record)

        zip_bytes = zip_buffer.getvalue()
        zip_file_name = f"batch_export_{int(time.time() * 1000)}.zip"
        zip_uri = await self.files.save_private(zip_bytes, zip_file_name)
        logger.info(
            f"[Exporter] 일괄 내보내기 완료: {len(records)}/{len(proposals)} proposals, {len(zip_bytes)} bytes"
        )

        return {
            "success": True,
            "total_proposals": len(proposals),
            "exports_created": len(records),
            "zip_file_name": zip_file_name,
            "zip_download_url": self.files.create_signed_url(zip_uri, self.settings.signed_url_expiry_seconds),
            "zip_file_size_bytes": len(zip_bytes),
            "export_records": [
                {"id": r.id, "proposal_id": r.proposal_id, "file_name": r.file_name} for r in records
            ],
            "errors": errors,
        }

    async def _render_and_store(
        self,
        proposal: Proposal,
        sections: list[ProposalSection],
        export_format: str,
        options: ExportOptions,
        template_id: Optional[str],
        user: User,
    ) -> tuple[ExportHistory, bytes]:
        watermark = needs_watermark(proposal.status)
        try:
            content = RENDERERS[export_format](proposal, sections, watermark, options)
        except (ValueError, KeyError, OSError) as e:
            raise ExportError(
                "Failed to generate document", details={"proposal_id": proposal.id, "error": str(e)}
            ) from e

        file_name = export_file_name(proposal.proposal_name, export_format)
        file_uri = await self.files.save_private(content, file_name)
        expires_in = self.settings.signed_url_expiry_seconds
        download_url = self.files.create_signed_url(file_uri, expires_in)

        record = await self.store.create(ExportHistory, {
            "proposal_id": proposal.id,
            "organization_id": proposal.organization_id,
            "exported_by_email": user.email,
            "exported_by_name": user.full_name,
            "export_format": export_format,
            "has_watermark": watermark,
            "proposal_status_at_export": proposal.status,
            "template_id": template_id,
            "sections_exported": [s.id for s in sections],
            "file_name": file_name,
            "file_size_bytes": len(content),
            "file_uri": file_uri,
            "download_url": download_url,
            "expires_at": utcnow() + timedelta(seconds=expires_in),
            "options": json.dumps(options.model_dump()),
        })
        logger.info(
            f"[Exporter] {export_format.upper()} 생성: {file_name} ({len(content)} bytes, watermark={watermark})"
        )
        return record, content

    @staticmethod
    def _check_format(export_format: str) -> str:
        if export_format not in EXPORT_FORMATS:
            raise InputValidationError('Invalid format. Use "docx" or "pdf"')
        return export_format


_document_exporter: Optional[DocumentExporter] = None


def get_document_exporter() -> DocumentExporter:
    global _document_exporter
    if _document_exporter is None:
        _document_exporter = DocumentExporter()
    return _document_exporter
