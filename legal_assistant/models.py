"""
Data model for a two-party analysis session.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class Party(str, Enum):
    PLAINTIFF = 'plaintiff'
    DEFENDANT = 'defendant'

    @property
    def opponent(self) -> 'Party':
        return Party.DEFENDANT if self is Party.PLAINTIFF else Party.PLAINTIFF


class LawsuitType(str, Enum):
    CIVIL = 'civil'
    CRIMINAL = 'criminal'


PARTY_LABELS = {
    LawsuitType.CIVIL: {Party.PLAINTIFF: '원고', Party.DEFENDANT: '피고'},
    LawsuitType.CRIMINAL: {Party.PLAINTIFF: '검사', Party.DEFENDANT: '피고인'},
}


def party_labels(lawsuit_type: Optional[LawsuitType]) -> Dict[Party, str]:
    """Display names for both parties; civil names when the case type is unset."""
    return dict(PARTY_LABELS.get(lawsuit_type, PARTY_LABELS[LawsuitType.CIVIL]))


class EvidenceKind(str, Enum):
    IMAGE = 'image'
    PDF = 'pdf'


@dataclass
class Evidence:
    """A single uploaded artifact, held in memory for the session only."""
    filename: str
    media_type: str
    data: bytes
    kind: EvidenceKind

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class LoadedEvidence:
    """Evidence converted for use inside a prompt.

    Images keep their media type and a base64 payload; PDFs become plain text.
    """
    kind: EvidenceKind
    media_type: str
    base64_data: Optional[str] = None
    text: Optional[str] = None


class ComparisonRow(BaseModel):
    model_config = ConfigDict(extra='forbid')

    issue: str
    plaintiff_argument: str
    plaintiff_evidence: str
    defendant_argument: str
    defendant_evidence: str


@dataclass(frozen=True)
class AnalysisBundle:
    """Output of one successful synthesis run. All four parts are always present."""
    summary: str
    comparison: List[ComparisonRow]
    counter_arguments: str
    structured_arguments: str
