#!/usr/bin/env python3
"""
Main entry point for the interview lab.
Allows running the package with: python -m interview_lab

Usage:
    python -m interview_lab [--project=ID] [--seconds=N] [--participant=NAME] [--mute]
    python -m interview_lab --enhance="research objective" [--project=ID] [--kb]
    python -m interview_lab --analyze=TRANSCRIPT_ID
    python -m interview_lab --list [--project=ID]
"""
import sys
import asyncio
from typing import Optional

from .config import get_config, Config, ConfigurationError
from .utils import setup_logging
from .infrastructure.data import JsonFileStorage, Storage
from .infrastructure.llm import VertexRestClient
from .infrastructure.timers import AsyncioScheduler
from .infrastructure.voice import VoiceAgentServer
from .interview import (
    SessionController, SessionEventBus, EventLogger, EventType, EndReason,
    ProjectService, PromptEnhancementService, InterviewAssistantService,
    TranscriptService, InterviewBackend, TranscriptAnalyzer,
    render_transcript_markdown, format_duration, sentiment_label, ServiceError,
)

DEFAULT_USER_ID = 1
DEFAULT_INTERVIEW_SECONDS = 45.0


def _arg_value(name: str) -> Optional[str]:
    prefix = f"--{name}="
    for arg in sys.argv[1:]:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return None


def _ensure_project(storage: Storage, project_arg: Optional[str]) -> int:
    projects = ProjectService(storage)
    if project_arg is not None:
        return projects.get_project(project_arg).id

    existing = projects.list_projects(DEFAULT_USER_ID)
    if existing:
        return existing[0].id

    project = projects.create_project(DEFAULT_USER_ID, "Demo project", "Created by the interview lab CLI")
    print(f"📁 Created project {project.id} ({project.name})")
    return project.id


def mute_when_active(controller: SessionController, event_bus: SessionEventBus) -> None:
    """
    Mute the session as soon as it becomes active. A live call only turns active once
    the platform reports call-start; a simulated one turns active inside `start()`.
    """
    def on_status(event):
        if event.data["current"] == "active" and not controller.muted:
            controller.toggle_mute()

    event_bus.subscribe(EventType.STATUS_CHANGED, on_status)


async def run_interview(config: Config, storage: Storage, project_id: int, seconds: float,
                        participant: Optional[str], mute: bool) -> Optional[SessionController]:
    """Run one interview on the event loop until it ends or `seconds` pass."""
    scheduler = AsyncioScheduler()

    event_bus = SessionEventBus()
    event_bus.subscribe_all(EventLogger().handle_event)
    event_bus.subscribe(EventType.TRANSCRIPT_ENTRY_ADDED, lambda e: print(
        f"{'🤖' if e.data['speaker'] == 'assistant' else '💬'} {e.data['text']}"
    ))
    event_bus.subscribe(EventType.NOTIFICATION, lambda e: print(
        f"{'❌' if e.is_error else '✅'} {e.data['title']}: {e.data['description']}"
    ))

    ended = asyncio.Event()
    event_bus.subscribe(EventType.STATUS_CHANGED, lambda e: ended.set() if e.data["current"] == "ended" else None)

    voice_server = VoiceAgentServer(config.require_vapi_api_key(), config.vapi_base_url)
    backend = InterviewBackend(
        InterviewAssistantService(storage, voice_server, config),
        TranscriptService(storage),
    )
    controller = SessionController(project_id, backend, config, scheduler, event_bus=event_bus)
    if mute:
        mute_when_active(controller, event_bus)

    session_id = controller.create_session()
    if not session_id or not controller.start(session_id):
        return None

    join_url = getattr(controller.client, "web_call_url", None)
    if join_url:
        print(f"🔗 Join the interview at: {join_url}")

    controller.session.participant_name = participant

    print(f"\n🎙️  Interview {session_id} running for up to {seconds:.0f}s")
    print("=" * 50)

    try:
        await asyncio.wait_for(ended.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        controller.end(EndReason.USER_REQUESTED)
    except asyncio.CancelledError:
        controller.end(EndReason.COMPONENT_UNMOUNTED)
        raise

    return controller


def _print_transcripts(storage: Storage, project_id: int) -> None:
    records = TranscriptService(storage).list_transcripts(project_id)
    if not records:
        print("📭 No transcripts yet")
        return
    for record in records:
        print(
            f"#{record.id}  {record.conductedAt:%Y-%m-%d %H:%M}  "
            f"{record.participantName or 'Anonymous'}  {format_duration(record.duration)}  "
            f"{sentiment_label(record.sentimentScore)}"
        )


def _llm_client(config: Config) -> VertexRestClient:
    return VertexRestClient(
        project=config.require_google_cloud_project(),
        credentials_json=config.google_application_credentials,
    )


def main():
    """Command-line interface for the interview lab."""
    config = get_config()
    log_file = setup_logging(config.log_file, config.log_level)
    storage = JsonFileStorage(config.data_file)

    try:
        project_id = _ensure_project(storage, _arg_value("project"))

        if "--list" in sys.argv:
            _print_transcripts(storage, project_id)
            return

        objective = _arg_value("enhance")
        if objective is not None:
            service = PromptEnhancementService(storage, _llm_client(config))
            prompt = service.enhance(project_id, objective, use_knowledge_base="--kb" in sys.argv)
            print(prompt)
            return

        transcript_id = _arg_value("analyze")
        if transcript_id is not None:
            transcripts = TranscriptService(storage)
            analyzer = TranscriptAnalyzer(_llm_client(config), transcripts, storage)
            print(render_transcript_markdown(analyzer.analyze(transcript_id)))
            return

        try:
            seconds = float(_arg_value("seconds") or DEFAULT_INTERVIEW_SECONDS)
        except ValueError:
            print("❌ Invalid seconds value. Use --seconds=45")
            sys.exit(1)

        print(f"📝 Detailed logs: {log_file}")
        controller = asyncio.run(run_interview(
            config, storage, project_id, seconds,
            participant=_arg_value("participant"),
            mute="--mute" in sys.argv,
        ))
    except ConfigurationError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)
    except ServiceError as e:
        print(f"❌ {e}")
        sys.exit(1)

    if controller is None:
        sys.exit(1)

    if controller.session.saved_transcript_id is not None:
        record = TranscriptService(storage).get_transcript(controller.session.saved_transcript_id)
        print()
        print(render_transcript_markdown(record))
    else:
        print("📭 Nothing was saved")


if __name__ == "__main__":
    main()
