import asyncio
from types import SimpleNamespace

import pytest

from legal_assistant.errors import AnalysisFailedError, MalformedResponseError
from legal_assistant.models import ComparisonRow
from legal_assistant.processors.analysis_dispatcher import DEFAULT_MODEL, AnalysisDispatcher
from legal_assistant.processors.prompt_builder import (
    FAILURE_MESSAGES,
    Operation,
    build_case_summary,
    build_comparison_table,
)


def comparison_request():
    return build_comparison_table('원고 요약', '피고 요약', '쟁점')


def test_text_operation_makes_one_call_and_returns_text(make_dispatcher, text_reply):
    dispatcher, messages = make_dispatcher(case_summary=text_reply('  사건 요약입니다.\n'))
    request = build_case_summary('원고 요약', '피고 요약')

    result = asyncio.run(dispatcher.dispatch(request))

    assert result == '사건 요약입니다.'
    assert len(messages.calls) == 1
    call = messages.calls[0]
    assert call['model'] == 'test-model'
    assert call['messages'] == [{'role': 'user', 'content': request.parts}]
    assert 'tools' not in call


def test_default_model_is_used_when_none_given():
    assert AnalysisDispatcher(client=None).model == DEFAULT_MODEL


def test_comparison_forces_tool_and_returns_rows(make_dispatcher, sample_row):
    dispatcher, messages = make_dispatcher()

    rows = asyncio.run(dispatcher.dispatch(comparison_request()))

    assert rows == [ComparisonRow(**sample_row)]
    call = messages.calls[0]
    assert call['tool_choice'] == {'type': 'tool', 'name': 'record_comparison_table'}
    assert call['tools'][0]['name'] == 'record_comparison_table'


def test_comparison_empty_list_is_valid(make_dispatcher, tool_reply):
    dispatcher, _ = make_dispatcher(comparison_table=tool_reply([]))

    assert asyncio.run(dispatcher.dispatch(comparison_request())) == []


@pytest.mark.parametrize('bad_row', [
    {'issue': '쟁점'},
    {
        'issue': '쟁점',
        'plaintiff_argument': None,
        'plaintiff_evidence': '',
        'defendant_argument': '',
        'defendant_evidence': '',
    },
    '쟁점',
])
def test_comparison_malformed_row_is_rejected(make_dispatcher, tool_reply, sample_row, bad_row):
    dispatcher, _ = make_dispatcher(comparison_table=tool_reply([sample_row, bad_row]))

    with pytest.raises(MalformedResponseError) as exc:
        asyncio.run(dispatcher.dispatch(comparison_request()))
    assert exc.value.message == FAILURE_MESSAGES[Operation.COMPARISON_TABLE]


def test_comparison_missing_rows_is_rejected(make_dispatcher):
    response = SimpleNamespace(content=[SimpleNamespace(type='tool_use', name='record_comparison_table', input={})])
    dispatcher, _ = make_dispatcher(comparison_table=response)

    with pytest.raises(MalformedResponseError):
        asyncio.run(dispatcher.dispatch(comparison_request()))


def test_comparison_accepts_fenced_json_text(make_dispatcher, text_reply, sample_row):
    fenced = '```json\n[{"issue": "%s", "plaintiff_argument": "a", "plaintiff_evidence": "b", ' \
             '"defendant_argument": "c", "defendant_evidence": "d"}]\n```' % sample_row['issue']
    dispatcher, _ = make_dispatcher(comparison_table=text_reply(fenced))

    rows = asyncio.run(dispatcher.dispatch(comparison_request()))

    assert len(rows) == 1
    assert rows[0].issue == sample_row['issue']
    assert rows[0].defendant_evidence == 'd'


def test_comparison_unparseable_text_is_rejected(make_dispatcher, text_reply):
    dispatcher, _ = make_dispatcher(comparison_table=text_reply('표를 만들 수 없습니다.'))

    with pytest.raises(MalformedResponseError):
        asyncio.run(dispatcher.dispatch(comparison_request()))


def test_provider_failure_becomes_fixed_message(make_dispatcher, provider_error, caplog):
    dispatcher, messages = make_dispatcher(case_summary=provider_error())
    caplog.set_level('ERROR')

    with pytest.raises(AnalysisFailedError) as exc:
        asyncio.run(dispatcher.dispatch(build_case_summary('원고 요약', '피고 요약')))

    assert exc.value.message == FAILURE_MESSAGES[Operation.CASE_SUMMARY]
    assert 'Connection error' in exc.value.detail
    assert 'Connection error' not in exc.value.message
    assert 'Model call failed (case_summary)' in caplog.text
    assert len(messages.calls) == 1


def test_from_api_key_uses_current_default_model(monkeypatch):
    monkeypatch.delenv('LEGAL_ASSISTANT_MODEL', raising=False)

    dispatcher = AnalysisDispatcher.from_api_key('test-key')

    assert dispatcher.model == DEFAULT_MODEL == 'claude-sonnet-4-5'


def test_from_api_key_honors_model_override(monkeypatch):
    monkeypatch.setenv('LEGAL_ASSISTANT_MODEL', 'claude-opus-4-1')

    assert AnalysisDispatcher.from_api_key('test-key').model == 'claude-opus-4-1'


def test_leaving_dispatcher_context_closes_client():
    dispatcher = AnalysisDispatcher.from_api_key('test-key', model='test-model')

    async def use():
        async with dispatcher:
            assert not dispatcher.client.is_closed()

    asyncio.run(use())

    assert dispatcher.client.is_closed()


def test_client_is_closed_even_when_call_fails(make_dispatcher, provider_error):
    dispatcher, _ = make_dispatcher(case_summary=provider_error())

    async def use():
        async with dispatcher:
            await dispatcher.dispatch(build_case_summary('원고 요약', '피고 요약'))

    with pytest.raises(AnalysisFailedError):
        asyncio.run(use())

    assert dispatcher.client.is_closed()
