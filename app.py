#!/usr/bin/env python3
"""
Legal Argument Assistant
Organizes both parties' arguments and evidence and asks Claude to summarize,
evaluate, compare, rebut and structure them
"""

import asyncio
import io
import logging
import os
import uuid

from dotenv import load_dotenv
from flask import Flask, jsonify, request, send_file
from werkzeug.utils import secure_filename

from legal_assistant.models import LawsuitType, Party
from legal_assistant.processors.analysis_dispatcher import AnalysisDispatcher
from legal_assistant.processors.analysis_session import AnalysisSession, PartyActivity, SynthesisStatus
from legal_assistant.utils.result_export import EXPORT_FILENAME, EXPORT_MIMETYPE, result_as_text

load_dotenv()

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Configuration
app.config['ANTHROPIC_API_KEY'] = os.getenv('ANTHROPIC_API_KEY')
app.config['MODEL'] = os.getenv('LEGAL_ASSISTANT_MODEL')

# Sessions live in memory only
SESSIONS = {}

# Errors caused by the user's input; anything else is a failed model call
INPUT_ERROR_KINDS = {'PreconditionError', 'UnsupportedMediaError', 'ReadError'}


def get_dispatcher() -> AnalysisDispatcher:
    """Build a dispatcher for one request, with the configured key injected"""
    return AnalysisDispatcher.from_api_key(app.config['ANTHROPIC_API_KEY'], model=app.config['MODEL'])


def run_with_dispatcher(operation):
    """Run one session operation on a fresh dispatcher, closing its client before the loop ends"""
    async def runner():
        async with get_dispatcher() as dispatcher:
            return await operation(dispatcher)
    return asyncio.run(runner())


def get_session(session_id: str):
    return SESSIONS.get(session_id)


def parse_party(value: str):
    try:
        return Party(value)
    except ValueError:
        return None


def error_status(error_kind) -> int:
    return 400 if error_kind in INPUT_ERROR_KINDS else 502


def party_response(session: AnalysisSession, party: Party, ok: bool, error_field: str = 'error'):
    data = session.to_dict()
    if ok:
        return jsonify(data)
    data['message'] = data['parties'][party.value][error_field]
    if error_field == 'error':
        return jsonify(data), error_status(session.parties[party].error_kind)
    return jsonify(data), 400


# ============ ROUTES ============

@app.route('/session/new', methods=['POST'])
def create_session():
    """Start a new analysis session"""
    data = request.get_json(silent=True) or {}

    lawsuit_type = data.get('lawsuit_type')
    try:
        lawsuit_type = LawsuitType(lawsuit_type) if lawsuit_type else None
    except ValueError:
        return jsonify({'error': f'Unknown lawsuit type: {lawsuit_type}'}), 400

    session_id = str(uuid.uuid4())[:8]
    SESSIONS[session_id] = AnalysisSession(lawsuit_type=lawsuit_type)
    logger.info("Created session %s", session_id)

    return jsonify({'session_id': session_id})


@app.route('/session/<session_id>')
def session_state(session_id):
    session = get_session(session_id)
    if not session:
        return jsonify({'error': 'Session not found'}), 404
    return jsonify(session.to_dict())


@app.route('/session/<session_id>', methods=['DELETE'])
def delete_session(session_id):
    """Discard a session and everything uploaded to it"""
    if SESSIONS.pop(session_id, None) is None:
        return jsonify({'error': 'Session not found'}), 404
    logger.info("Deleted session %s", session_id)
    return jsonify({'deleted': session_id})


@app.route('/session/<session_id>/settings', methods=['POST'])
def update_settings(session_id):
    """Case type, represented side, key issues and own arguments"""
    session = get_session(session_id)
    if not session:
        return jsonify({'error': 'Session not found'}), 404

    data = request.get_json(silent=True) or {}
    try:
        if 'lawsuit_type' in data:
            session.lawsuit_type = LawsuitType(data['lawsuit_type']) if data['lawsuit_type'] else None
        if 'my_side' in data:
            session.my_side = Party(data['my_side'])
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    if 'key_issues' in data:
        session.key_issues = data['key_issues'] or ''
    if 'my_arguments' in data:
        session.my_arguments = data['my_arguments'] or ''

    return jsonify(session.to_dict())


@app.route('/session/<session_id>/<party>/argument', methods=['POST'])
def set_argument(session_id, party):
    session = get_session(session_id)
    party = parse_party(party)
    if not session or not party:
        return jsonify({'error': 'Session not found'}), 404

    data = request.get_json(silent=True) or {}
    session.set_argument(party, data.get('text', ''))
    return jsonify(session.to_dict())


@app.route('/session/<session_id>/<party>/argument/file', methods=['POST'])
def drop_argument_file(session_id, party):
    """Replace the argument with the contents of a dropped .txt file"""
    session = get_session(session_id)
    party = parse_party(party)
    if not session or not party:
        return jsonify({'error': 'Session not found'}), 404

    if 'file' not in request.files:
        return jsonify({'error': 'No file provided'}), 400

    file = request.files['file']
    ok = session.drop_argument_file(party, file.mimetype, file.read())
    return party_response(session, party, ok, 'argument_file_error')


@app.route('/session/<session_id>/<party>/evidence', methods=['POST'])
def upload_evidence(session_id, party):
    """Upload an image or PDF as the party's evidence"""
    session = get_session(session_id)
    party = parse_party(party)
    if not session or not party:
        return jsonify({'error': 'Session not found'}), 404

    if 'file' not in request.files:
        return jsonify({'error': 'No file provided'}), 400

    file = request.files['file']
    if file.filename == '':
        return jsonify({'error': 'No file selected'}), 400

    filename = secure_filename(file.filename)
    ok = session.attach_evidence(party, filename, file.mimetype, file.read())
    return party_response(session, party, ok, 'evidence_error')


@app.route('/session/<session_id>/<party>/evidence', methods=['DELETE'])
def remove_evidence(session_id, party):
    session = get_session(session_id)
    party = parse_party(party)
    if not session or not party:
        return jsonify({'error': 'Session not found'}), 404

    session.remove_evidence(party)
    return jsonify(session.to_dict())


@app.route('/session/<session_id>/<party>/summarize', methods=['POST'])
def summarize_party(session_id, party):
    """Summarize one party's argument and evidence"""
    session = get_session(session_id)
    party = parse_party(party)
    if not session or not party:
        return jsonify({'error': 'Session not found'}), 404

    if session.parties[party].activity is not PartyActivity.IDLE:
        return jsonify({'error': 'Operation already running'}), 409

    ok = run_with_dispatcher(lambda dispatcher: session.summarize(party, dispatcher))
    return party_response(session, party, ok)


@app.route('/session/<session_id>/<party>/evaluate', methods=['POST'])
def evaluate_party(session_id, party):
    """Judge how well one party's evidence supports its argument"""
    session = get_session(session_id)
    party = parse_party(party)
    if not session or not party:
        return jsonify({'error': 'Session not found'}), 404

    if session.parties[party].activity is not PartyActivity.IDLE:
        return jsonify({'error': 'Operation already running'}), 409

    ok = run_with_dispatcher(lambda dispatcher: session.evaluate(party, dispatcher))
    return party_response(session, party, ok)


@app.route('/session/<session_id>/synthesize', methods=['POST'])
def synthesize(session_id):
    """Case summary, comparison table, counter-arguments and argument structure in one run"""
    session = get_session(session_id)
    if not session:
        return jsonify({'error': 'Session not found'}), 404

    if session.synthesis_status is SynthesisStatus.RUNNING:
        return jsonify({'error': 'Analysis already running'}), 409

    ok = run_with_dispatcher(session.synthesize)
    data = session.to_dict()
    if ok:
        return jsonify(data)
    data['message'] = session.error
    return jsonify(data), error_status(session.error_kind)


@app.route('/session/<session_id>/result')
def result_text(session_id):
    """Full result as plain text, for copying to the clipboard"""
    session = get_session(session_id)
    if not session:
        return jsonify({'error': 'Session not found'}), 404
    return jsonify({'text': result_as_text(session.bundle, session.labels)})


@app.route('/session/<session_id>/download')
def download_result(session_id):
    """Download the full result as a .txt file"""
    session = get_session(session_id)
    if not session:
        return "Session not found", 404

    content = result_as_text(session.bundle, session.labels)
    if not content:
        return "No analysis result yet", 404

    return send_file(
        io.BytesIO(content.encode('utf-8')),
        as_attachment=True,
        download_name=EXPORT_FILENAME,
        mimetype=EXPORT_MIMETYPE
    )


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')

    print("\n" + "="*60)
    print("LEGAL ARGUMENT ASSISTANT")
    print("="*60)
    print(f"\nServer starting at: http://127.0.0.1:5003")
    print("\nEnter both sides' arguments and evidence, then let Claude analyze the case.")
    print("Press Ctrl+C to stop.\n")

    app.run(debug=True, host='127.0.0.1', port=5003)
