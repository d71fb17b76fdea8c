"""
Result Export
Flattens a synthesis bundle into one plain-text document for copy or download
"""

from typing import Dict, Optional

from legal_assistant.models import AnalysisBundle, ComparisonRow, Party

EXPORT_FILENAME = 'legal_analysis_result.txt'
EXPORT_MIMETYPE = 'text/plain; charset=utf-8'

SUMMARY_HEADER = '--- 사건 요약 ---'
COMPARISON_HEADER = '--- 쟁점별 비교 ---'
COUNTER_HEADER = '--- 반박 논거 ---'
STRUCTURE_HEADER = '--- 내 주장 정리 ---'


def _format_row(row: ComparisonRow, labels: Dict[Party, str]) -> str:
    plaintiff = labels[Party.PLAINTIFF]
    defendant = labels[Party.DEFENDANT]
    return (
        f"[쟁점]: {row.issue}\n\n"
        f"  - {plaintiff} 주장: {row.plaintiff_argument}\n"
        f"  - {plaintiff} 증거: {row.plaintiff_evidence}\n\n"
        f"  - {defendant} 주장: {row.defendant_argument}\n"
        f"  - {defendant} 증거: {row.defendant_evidence}\n"
        f"{'-' * 33}\n"
    )


def result_as_text(bundle: Optional[AnalysisBundle], labels: Dict[Party, str]) -> str:
    """Sections in fixed order: summary, comparison, counter-arguments, structure.

    Empty sections are left out.
    """
    if bundle is None:
        return ''

    sections = []
    if bundle.summary:
        sections.append((SUMMARY_HEADER, bundle.summary))
    if bundle.comparison:
        rows = '\n'.join(_format_row(row, labels) for row in bundle.comparison)
        sections.append((COMPARISON_HEADER, rows))
    if bundle.counter_arguments:
        sections.append((COUNTER_HEADER, bundle.counter_arguments))
    if bundle.structured_arguments:
        sections.append((STRUCTURE_HEADER, bundle.structured_arguments))

    # Section bodies keep their own whitespace; only the whole text is trimmed
    return ''.join(f"{header}\n\n{body}\n\n" for header, body in sections).strip()
