"""Markdown templates for generated output files."""

from ..models import Note

EMPTY_SECTION_INDEX = "# Section\n\nNo notes in this section."


def render_section_index(notes: list[Note]) -> str:
    """Table of contents linking every note in a section."""
    if not notes:
        return EMPTY_SECTION_INDEX

    lines = ["# Section Contents", "", "This section contains the following notes:", ""]
    for note in notes:
        lines.append(f"- [{note.title}]({note.filename})")
    return "\n".join(lines)


def render_report(report) -> str:
    """Render a ProcessingReport as RUN_REPORT.md."""
    lines = [
        "# Notion Prep Processing Report",
        "",
        f"**Generated:** {report.generated_at.isoformat()}",
        f"**Processing Time:** {report.processing_seconds:.2f} seconds",
        "",
        "## Summary",
        "",
        f"- **Total Notes:** {report.total_notes}",
        f"- **Total Assets:** {report.total_assets}",
        f"- **Sections Created:** {len(report.sections)}",
        f"- **Grouping Strategy:** {report.strategy}",
        f"- **Links Rewritten:** {report.rewritten_links}",
        f"- **Images Rewritten:** {report.rewritten_images}",
        "",
        "## Sections",
        "",
    ]

    for section in report.sections:
        lines.append(f"### {section.label}")
        lines.append(f"- **Notes:** {section.note_count}")
        lines.append(f"- **Sample Notes:** {', '.join(section.sample_notes)}")
        if section.top_terms:
            lines.append(f"- **Top Terms:** {', '.join(section.top_terms)}")
        lines.append("")

    lines += [
        "## Assets",
        "",
        f"- **Note-specific Assets:** {report.note_asset_folders} folders",
        f"- **Unassigned Assets:** {report.unassigned_assets} files",
        "",
    ]

    if report.k is not None:
        lines += ["## Clustering Information", "", f"- **K Value:** {report.k}", ""]

    if report.unresolved_links or report.unresolved_images:
        lines += ["## Unresolved References", ""]
        for item in report.unresolved_links:
            lines.append(f"- Link `{item.target}` in {item.note}")
        for item in report.unresolved_images:
            lines.append(f"- Image `{item.target}` in {item.note}")
        lines.append("")

    lines += [
        "## Next Steps",
        "",
        "1. Download the `notion_ready.zip` file",
        "2. Extract it to your desired location",
        "3. Import the sections into Notion",
        "4. Note: Internal links may need manual adjustment in Notion",
        "",
    ]
    return "\n".join(lines)
