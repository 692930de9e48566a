"""
Flask Web Application for the Encounter Assistant

JSON API consumed by the encounter screens.
"""

from flask import Flask, request, jsonify
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException
import logging

from encounter.commands import (
    FinishEncounter,
    ResetEncounter,
    SelectPatient,
    StartRecording,
    StopRecording,
    TranscriptFragment,
)
from encounter.config import Settings
from encounter.core.encounter_controller import EncounterController
from encounter.core.patient_records import PatientRecordRepository
from encounter.persistence import JsonFileKeyValueStore, SessionStore
from encounter.results import IllegalCommand
from encounter.utils.display_helpers import get_state_view
from encounter.utils.extraction_client import ExtractionClient

logger = logging.getLogger(__name__)


def _result_response(result, error_status=502):
    """Convert a controller result into a JSON response."""
    if isinstance(result, IllegalCommand):
        return jsonify({
            'success': False,
            'error': result.reason,
            'command': result.command_type
        }), 400

    body = {
        'success': result.ok,
        'recording_state': result.recording_state,
        'transcript': result.transcript,
        'session': result.state.to_json(),
        'view': get_state_view(result.state),
        'debug': result.debug
    }
    if not result.ok:
        body['error'] = result.error
        return jsonify(body), error_status
    return jsonify(body)


def create_app(controller=None, session_store=None, settings=None):
    """
    Build the Flask app.

    Args:
        controller: EncounterController (built from settings if None)
        session_store: SessionStore (built from settings if None)
        settings: Settings (read from environment if None)
    """
    settings = settings or Settings.from_env()

    if session_store is None:
        session_store = SessionStore(JsonFileKeyValueStore(settings.session_store_dir))

    if controller is None:
        controller = EncounterController(
            extraction_client=ExtractionClient(settings.extraction_url, timeout=settings.extraction_timeout),
            patient_repository=PatientRecordRepository(settings.patient_data_dir),
            session_store=session_store
        )
        controller.handle(SelectPatient(settings.default_patient_id))

    app = Flask(__name__)
    app.config['CONTROLLER'] = controller
    app.config['SESSION_STORE'] = session_store

    @app.route('/api/recording/start', methods=['POST'])
    def start_recording():
        """Open the listening window"""
        return _result_response(controller.handle(StartRecording()))

    @app.route('/api/recording/stop', methods=['POST'])
    def stop_recording():
        """Close the listening window (accumulated signal kept)"""
        return _result_response(controller.handle(StopRecording()))

    @app.route('/api/transcript', methods=['POST'])
    def submit_fragment():
        """Submit one transcript fragment"""
        data = request.get_json(silent=True) or {}
        text = data.get('text', '')
        if not isinstance(text, str):
            return jsonify({'success': False, 'error': "'text' must be a string"}), 400
        return _result_response(controller.handle(TranscriptFragment(text)))

    @app.route('/api/patient', methods=['POST'])
    def select_patient():
        """Load a patient's labs and medical history"""
        data = request.get_json(silent=True) or {}
        patient_id = data.get('patient_id')
        if not isinstance(patient_id, str) or not patient_id:
            return jsonify({'success': False, 'error': "'patient_id' is required"}), 400
        return _result_response(controller.handle(SelectPatient(patient_id)))

    @app.route('/api/reset', methods=['POST'])
    def reset_encounter():
        """Discard accumulated signal"""
        return _result_response(controller.handle(ResetEncounter()))

    @app.route('/api/finish', methods=['POST'])
    def finish_encounter():
        """Persist the session for the next screen"""
        return _result_response(controller.handle(FinishEncounter()))

    @app.route('/api/session', methods=['GET'])
    def get_session():
        """Current in-memory session, plus the stored copy if any"""
        stored = session_store.load()
        return jsonify({
            'success': True,
            'recording_state': controller.recording_state.value,
            'session': controller.state.to_json(),
            'stored_session': stored.to_json() if stored else None,
            'view': get_state_view(controller.state)
        })

    @app.route('/api/session/reset-diagnosis', methods=['POST'])
    def reset_diagnosis():
        """Drop stored diagnoses/write-up, keep clinical signal"""
        stored = session_store.reset_keep_clinical_signal()
        return jsonify({
            'success': True,
            'stored_session': stored.to_json() if stored else None
        })

    @app.route('/api/writeup', methods=['POST'])
    def store_write_up():
        """Store the write-up artifact"""
        data = request.get_json(silent=True) or {}
        content = data.get('content')
        if not isinstance(content, str):
            return jsonify({'success': False, 'error': "'content' must be a string"}), 400
        write_up = session_store.save_write_up(content, data.get('diagnosis_id'))
        return jsonify({'success': True, 'writeup': write_up.to_json()})

    @app.route('/api/writeup', methods=['GET'])
    def get_write_up():
        """Current write-up artifact"""
        write_up = session_store.load_write_up()
        return jsonify({'success': True, 'writeup': write_up.to_json() if write_up else None})

    @app.errorhandler(Exception)
    def handle_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.error(f"Unhandled error: {type(e).__name__} - {e}")
        return jsonify({'success': False, 'error': str(e)}), 500

    return app


if __name__ == '__main__':
    load_dotenv()

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = create_app()

    print("\n" + "=" * 60)
    print("ENCOUNTER ASSISTANT - WEB API")
    print("=" * 60)
    print("\nServer starting on http://localhost:5000")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60 + "\n")

    app.run(debug=False, host='0.0.0.0', port=5000)
