"""Build the processing report written as RUN_REPORT.md."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..models import AssetIndex, Note, RewrittenNote, SectionLayout
from .templates import render_report

REPORT_FILENAME = "RUN_REPORT.md"


@dataclass
class SectionSummary:
    label: str
    note_count: int
    sample_notes: list[str]
    top_terms: list[str] = field(default_factory=list)


@dataclass
class UnresolvedReference:
    note: str
    target: str


@dataclass
class ProcessingReport:
    generated_at: datetime
    processing_seconds: float
    total_notes: int
    total_assets: int
    strategy: str
    sections: list[SectionSummary]
    note_asset_folders: int
    unassigned_assets: int
    k: int | None = None
    rewritten_links: int = 0
    rewritten_images: int = 0
    unresolved_links: list[UnresolvedReference] = field(default_factory=list)
    unresolved_images: list[UnresolvedReference] = field(default_factory=list)

    def render(self) -> str:
        return render_report(self)


def build_report(
    notes: list[Note],
    layout: SectionLayout,
    rewritten: list[RewrittenNote],
    asset_index: AssetIndex,
    processing_seconds: float,
    generated_at: datetime | None = None,
) -> ProcessingReport:
    top_terms = {cluster.id: cluster.top_terms for cluster in layout.clusters}
    sections = [
        SectionSummary(
            label=section.label,
            note_count=len(section.notes),
            sample_notes=[n.title for n in section.notes[:3]],
            top_terms=top_terms.get(section.id, [])[:5],
        )
        for section in layout.sections
    ]

    return ProcessingReport(
        generated_at=generated_at or datetime.now(timezone.utc),
        processing_seconds=processing_seconds,
        total_notes=len(notes),
        total_assets=len(asset_index.by_filename),
        strategy=layout.strategy,
        sections=sections,
        note_asset_folders=len(asset_index.by_note_id),
        unassigned_assets=len(asset_index.unassigned),
        k=layout.k if layout.strategy == "cluster" else None,
        rewritten_links=sum(r.rewritten_links for r in rewritten),
        rewritten_images=sum(r.rewritten_images for r in rewritten),
        unresolved_links=[
            UnresolvedReference(r.original.filename, target) for r in rewritten for target in r.unresolved_links
        ],
        unresolved_images=[
            UnresolvedReference(r.original.filename, target) for r in rewritten for target in r.unresolved_images
        ],
    )
