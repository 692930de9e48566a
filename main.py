"""
Console Test Harness for EncounterController

Type transcript fragments at the prompt; each one is sent to the
extraction service and merged into the session.

Commands:
    :patient <ID>   load a patient's labs and history
    :reset          discard accumulated signal
    :quit           finish the encounter (session is persisted)
"""

import logging
import sys

from dotenv import load_dotenv

from encounter.commands import (
    FinishEncounter,
    ResetEncounter,
    SelectPatient,
    StartRecording,
    TranscriptFragment,
)
from encounter.config import Settings
from encounter.core.encounter_controller import EncounterController
from encounter.core.patient_records import PatientRecordRepository
from encounter.persistence import JsonFileKeyValueStore, SessionStore
from encounter.results import IllegalCommand
from encounter.utils.display_helpers import get_state_view
from encounter.utils.extraction_client import ExtractionClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

EXIT_COMMANDS = {":quit", ":exit", ":stop"}


def print_separator(char="=", length=60):
    """Print a separator line"""
    print(char * length)


def print_state(result):
    """Print the state view from an EncounterResult"""
    view = get_state_view(result.state)

    print("\n" + "-" * 60)
    print("Current Symptoms:")
    for line in view['symptoms']:
        print(f"  {line}")
    print("Current Vitals:")
    for line in view['vitals']:
        print(f"  {line}")
    print("Recent Lab Results:")
    for line in view['labs']:
        print(f"  {line}")
    if view['history']:
        print("Medical History:")
        for line in view['history']:
            print(f"  {line}")

    if result.error:
        print(f"ERROR: {result.error}")

    rejected = result.debug.get('reconciliation', {})
    if rejected.get('rejected_vitals'):
        print(f"Rejected vitals: {rejected['rejected_vitals']}")
    print("-" * 60)


def main():
    """Run console session"""
    load_dotenv()
    settings = Settings.from_env()

    print_separator()
    print("ENCOUNTER ASSISTANT - CONSOLE")
    print_separator()

    try:
        store = SessionStore(JsonFileKeyValueStore(settings.session_store_dir))
        controller = EncounterController(
            extraction_client=ExtractionClient(settings.extraction_url, timeout=settings.extraction_timeout),
            patient_repository=PatientRecordRepository(settings.patient_data_dir),
            session_store=store
        )
    except Exception as e:
        print(f"\nFailed to initialize: {e}")
        import traceback
        traceback.print_exc()
        return 1

    print_state(controller.handle(SelectPatient(settings.default_patient_id)))
    controller.handle(StartRecording())
    print("Listening. Type transcript fragments (':quit' to finish)\n")

    while True:
        try:
            user_input = input("> ").strip()
            if not user_input:
                continue

            if user_input.lower() in EXIT_COMMANDS:
                break
            elif user_input.startswith(":patient"):
                result = controller.handle(SelectPatient(user_input[len(":patient"):].strip()))
            elif user_input == ":reset":
                result = controller.handle(ResetEncounter())
            else:
                result = controller.handle(TranscriptFragment(user_input))

            if isinstance(result, IllegalCommand):
                print(f"\n{result.reason}")
                if result.command_type == 'TranscriptFragment':
                    controller.handle(StartRecording())
                    print("Recording restarted; resend the fragment.")
                continue

            print_state(result)

        except KeyboardInterrupt:
            print("\n\nSession interrupted by user (Ctrl+C)")
            break

    result = controller.handle(FinishEncounter())
    print_separator()
    print(f"Session stored (timestamp {result.state.timestamp})")
    print_separator()
    return 0


if __name__ == '__main__':
    sys.exit(main())
