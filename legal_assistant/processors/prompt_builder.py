"""
Prompt Builder

Assembles one multi-part request per analysis operation:
  - evaluate evidence      (argument + evidence)
  - summarize document     (argument and/or evidence)
  - case summary           (both party summaries)
  - comparison table       (both party summaries + key issues, structured output)
  - counter-arguments      (opponent summary + side names)
  - structure arguments    (own arguments + key issues)

Every builder checks its inputs first and raises PreconditionError, so an
incomplete request never reaches the dispatcher.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from legal_assistant.errors import PreconditionError
from legal_assistant.models import EvidenceKind, LoadedEvidence


class Operation(str, Enum):
    EVALUATE_EVIDENCE = 'evaluate_evidence'
    SUMMARIZE_DOCUMENT = 'summarize_document'
    CASE_SUMMARY = 'case_summary'
    COMPARISON_TABLE = 'comparison_table'
    COUNTER_ARGUMENTS = 'counter_arguments'
    STRUCTURE_ARGUMENTS = 'structure_arguments'


# Shown to the user when the model call for an operation fails
FAILURE_MESSAGES = {
    Operation.EVALUATE_EVIDENCE: '증거 평가 중 오류가 발생했습니다.',
    Operation.SUMMARIZE_DOCUMENT: '자료 요약 중 오류가 발생했습니다.',
    Operation.CASE_SUMMARY: '사건 요약 생성 중 오류가 발생했습니다.',
    Operation.COMPARISON_TABLE: '쟁점별 비교표 생성 중 오류가 발생했습니다.',
    Operation.COUNTER_ARGUMENTS: '반박 논거 생성 중 오류가 발생했습니다.',
    Operation.STRUCTURE_ARGUMENTS: '주장 정리 중 오류가 발생했습니다.',
}

PRECONDITION_MESSAGES = {
    Operation.EVALUATE_EVIDENCE: '평가를 위해 주장과 증거를 모두 제공해야 합니다.',
    Operation.SUMMARIZE_DOCUMENT: '요약할 주장이나 증거가 없습니다.',
    Operation.CASE_SUMMARY: '원고와 피고의 주장을 모두 요약해야 합니다.',
    Operation.COMPARISON_TABLE: '원고와 피고의 주장 요약, 그리고 주요 쟁점을 모두 입력해야 합니다.',
    Operation.COUNTER_ARGUMENTS: '상대방의 주장이 요약되지 않았습니다.',
    Operation.STRUCTURE_ARGUMENTS: '나의 주장이 요약되지 않았거나 주요 쟁점이 입력되지 않았습니다.',
}

COMPARISON_FIELDS = (
    'issue',
    'plaintiff_argument',
    'plaintiff_evidence',
    'defendant_argument',
    'defendant_evidence',
)

COMPARISON_FIELD_DESCRIPTIONS = {
    'issue': '핵심 쟁점',
    'plaintiff_argument': '쟁점에 대한 원고의 핵심 주장',
    'plaintiff_evidence': '원고 주장을 뒷받침하는 핵심 증거',
    'defendant_argument': '쟁점에 대한 피고의 핵심 주장',
    'defendant_evidence': '피고 주장을 뒷받침하는 핵심 증거',
}

# Forced tool call carrying the comparison table; tool input must be an object
COMPARISON_TOOL = {
    'name': 'record_comparison_table',
    'description': '쟁점별로 원고와 피고의 주장과 증거를 비교한 표를 기록합니다.',
    'input_schema': {
        'type': 'object',
        'properties': {
            'rows': {
                'type': 'array',
                'items': {
                    'type': 'object',
                    'properties': {
                        name: {'type': 'string', 'description': COMPARISON_FIELD_DESCRIPTIONS[name]}
                        for name in COMPARISON_FIELDS
                    },
                    'required': list(COMPARISON_FIELDS),
                    'additionalProperties': False,
                },
            },
        },
        'required': ['rows'],
    },
}


@dataclass(frozen=True)
class AnalysisRequest:
    """One ready-to-send model request."""
    operation: Operation
    parts: List[Dict[str, Any]]
    output_schema: Optional[Dict[str, Any]] = None

    @property
    def failure_message(self) -> str:
        return FAILURE_MESSAGES[self.operation]


# ---------------------------------------------------------------------------
# Instruction templates
# ---------------------------------------------------------------------------

EVALUATE_TEMPLATE = """당신은 예리한 법률 분석가입니다. 아래에 제시된 '주장'과 '증거 자료'를 면밀히 검토해주세요.

# 주장
{argument}

# 증거 자료 설명
(아래에 첨부된 이미지 또는 PDF 텍스트)

---

다음 항목에 따라 '증거 자료'가 '주장'을 얼마나 잘 뒷받침하는지 분석하고 평가해주세요.

1. **관련성:** 증거가 주장의 핵심 내용과 직접적으로 관련이 있습니까?
2. **신빙성 및 강도:** 이 증거는 주장을 입증하기에 얼마나 강력하고 신뢰할 만합니까? 증거의 명확성을 평가해주세요.
3. **잠재적 약점 또는 반론:** 이 증거에 대해 상대방이 제기할 수 있는 반론이나 증거의 약점은 무엇입니까?
4. **종합 평가:** 전반적으로 이 증거가 주장을 뒷받침하는 데 얼마나 효과적인지 종합적으로 평가해주세요.

결과는 Markdown 형식을 사용하여 가독성 좋게 구성해주세요."""

SUMMARIZE_TEMPLATE = """다음 법률 '주장'과 '증거 자료'를 검토하고, 이 둘을 종합하여 사건의 핵심 내용을 요약해주세요. 주장을 명확히 설명하고, 증거가 그 주장을 어떻게 뒷받침하는지 포함하여 서술해주세요. 일반인도 이해하기 쉽게 간결하게 작성해주세요.

---

# 주장
{argument}

"""

NO_ARGUMENT_PLACEHOLDER = '입력된 주장이 없습니다.'

CASE_SUMMARY_TEMPLATE = """다음은 법적 사건에 대한 원고와 피고의 주장 및 증거 요약입니다.

# 원고 측 주장 및 증거 요약
{plaintiff_summary}

# 피고 측 주장 및 증거 요약
{defendant_summary}

---

위 내용을 바탕으로 다음 항목들을 법률 전문가가 아닌 일반인도 이해하기 쉽게 평이한 언어로 요약하고 설명해주세요.

1. **각 당사자의 핵심 입장:** 원고와 피고가 각각 무엇을 주장하고 있는지 명확히 요약해주세요.
2. **핵심 증거:** 각 당사자가 제시한 가장 중요한 증거는 무엇인지 설명해주세요.
3. **주요 법적/사실적 쟁점:** 이 사건에서 가장 핵심적으로 다투어지는 쟁점들이 무엇인지 정리해주세요.

결과는 Markdown 형식을 사용하여 가독성 좋게 구성해주세요."""

COMPARISON_TEMPLATE = """다음은 법적 사건에 대한 원고와 피고의 주장 요약, 그리고 주요 쟁점입니다.

# 주요 쟁점
{key_issues}

# 원고 측 주장 및 증거 요약
{plaintiff_summary}

# 피고 측 주장 및 증거 요약
{defendant_summary}

---

위 정보를 바탕으로, 각 '주요 쟁점'에 대해 원고와 피고의 주장, 증거, 논리를 비교하는 표를 생성해주세요. 결과는 반드시 지정된 JSON 형식으로 반환해야 합니다. 각 주장에 대한 핵심 증거를 명확히 포함해주세요."""

COUNTER_TEMPLATE = """당신은 유능한 변호사입니다. 현재 저는 '{my_side}'측 입장에서 소송을 진행하고 있습니다.

아래는 상대방({opponent_side})의 주장과 증거 요약입니다.

# 상대방 주장 및 증거 요약
{opponent_summary}

---

위 내용을 면밀히 분석하여, 우리 측({my_side})에서 제기할 수 있는 효과적인 반박 논거와 대응 전략을 구체적으로 추천해주세요. 다음 항목을 포함하여 답변해주세요.

1. **상대방 주장의 논리적 허점 또는 약점:** 상대방 주장의 모순점이나 근거가 부족한 부분을 지적해주세요.
2. **제출된 증거에 대한 반박:** 상대방 증거의 신빙성을 문제 삼거나, 우리에게 유리하게 해석할 수 있는 방법을 제시해주세요.
3. **추가로 수집하면 좋을 증거:** 우리의 반박을 뒷받침하기 위해 어떤 증거를 더 확보하면 좋을지 아이디어를 제공해주세요.
4. **전체적인 대응 전략:** 어떤 방향으로 대응하는 것이 가장 효과적일지 전략을 제안해주세요.

결과는 Markdown 형식을 사용하여 가독성 좋게 구성해주세요."""

STRUCTURE_TEMPLATE = """다음은 제가 법적 사건에 대해 펼치고 싶은 주장들의 요약과 이 사건의 주요 쟁점입니다.

# 나의 주장 (요약)
{my_arguments}

# 주요 쟁점
{key_issues}

---

위 '나의 주장'들을 '주요 쟁점'에 따라 체계적으로 분류하고 논리적인 순서로 재구성해주세요. 각 쟁점별로 관련된 주장을 그룹화하고, 설득력 있는 구조로 정리하여 변론서나 준비서면에 바로 활용할 수 있는 형태로 만들어주세요.

결과는 Markdown 형식을 사용하여 가독성 좋게 구성해주세요."""


# ---------------------------------------------------------------------------
# Part helpers
# ---------------------------------------------------------------------------

def _present(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def _require(operation: Operation, *values) -> None:
    if not all(_present(v) for v in values):
        raise PreconditionError(PRECONDITION_MESSAGES[operation])


def text_part(text: str) -> Dict[str, Any]:
    return {'type': 'text', 'text': text}


def image_part(evidence: LoadedEvidence) -> Dict[str, Any]:
    return {
        'type': 'image',
        'source': {
            'type': 'base64',
            'media_type': evidence.media_type,
            'data': evidence.base64_data,
        },
    }


# ---------------------------------------------------------------------------
# Per-operation builders
# ---------------------------------------------------------------------------

def build_evaluate_evidence(argument: str, evidence: Optional[LoadedEvidence]) -> AnalysisRequest:
    operation = Operation.EVALUATE_EVIDENCE
    if not _present(argument) or evidence is None:
        raise PreconditionError(PRECONDITION_MESSAGES[operation])

    parts = [text_part(EVALUATE_TEMPLATE.format(argument=argument))]
    if evidence.kind is EvidenceKind.IMAGE:
        parts.append(image_part(evidence))
    else:
        parts.append(text_part(f"\n\n--- PDF 증거 내용 ---\n{evidence.text}"))
    return AnalysisRequest(operation, parts)


def build_summarize_document(argument: str, evidence: Optional[LoadedEvidence]) -> AnalysisRequest:
    operation = Operation.SUMMARIZE_DOCUMENT
    if not _present(argument) and evidence is None:
        raise PreconditionError(PRECONDITION_MESSAGES[operation])

    prompt = SUMMARIZE_TEMPLATE.format(argument=argument if _present(argument) else NO_ARGUMENT_PLACEHOLDER)
    parts = [text_part(prompt)]
    if evidence is not None and evidence.kind is EvidenceKind.IMAGE:
        parts.append(text_part("# 증거 자료\n(아래 이미지 참고)\n\n"))
        parts.append(image_part(evidence))
    elif evidence is not None:
        parts.append(text_part(f"# 증거 자료 (PDF 내용)\n{evidence.text}"))
    return AnalysisRequest(operation, parts)


def build_case_summary(plaintiff_summary: str, defendant_summary: str) -> AnalysisRequest:
    _require(Operation.CASE_SUMMARY, plaintiff_summary, defendant_summary)
    prompt = CASE_SUMMARY_TEMPLATE.format(
        plaintiff_summary=plaintiff_summary,
        defendant_summary=defendant_summary,
    )
    return AnalysisRequest(Operation.CASE_SUMMARY, [text_part(prompt)])


def build_comparison_table(plaintiff_summary: str, defendant_summary: str, key_issues: str) -> AnalysisRequest:
    _require(Operation.COMPARISON_TABLE, plaintiff_summary, defendant_summary, key_issues)
    prompt = COMPARISON_TEMPLATE.format(
        key_issues=key_issues,
        plaintiff_summary=plaintiff_summary,
        defendant_summary=defendant_summary,
    )
    return AnalysisRequest(Operation.COMPARISON_TABLE, [text_part(prompt)], output_schema=COMPARISON_TOOL)


def build_counter_arguments(opponent_summary: str, my_side: str, opponent_side: str) -> AnalysisRequest:
    _require(Operation.COUNTER_ARGUMENTS, opponent_summary)
    prompt = COUNTER_TEMPLATE.format(
        my_side=my_side,
        opponent_side=opponent_side,
        opponent_summary=opponent_summary,
    )
    return AnalysisRequest(Operation.COUNTER_ARGUMENTS, [text_part(prompt)])


def build_structure_arguments(my_arguments: str, key_issues: str) -> AnalysisRequest:
    _require(Operation.STRUCTURE_ARGUMENTS, my_arguments, key_issues)
    prompt = STRUCTURE_TEMPLATE.format(my_arguments=my_arguments, key_issues=key_issues)
    return AnalysisRequest(Operation.STRUCTURE_ARGUMENTS, [text_part(prompt)])
