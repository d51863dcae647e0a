"""
Session controller: owns the lifecycle of one interview session.

The controller asks the backend for a session id, attaches either the live voice agent
client or the simulated one, turns client events into transcript/volume state, and
saves the transcript at most once when the session ends.

All state changes happen inside client callbacks or explicit calls on one event loop,
so the saved flag needs no locking: the first save to succeed wins and every later
attempt sees `saved` already set.
"""
import time
import logging
from typing import Any, Callable, Dict, List, Optional

from .models import Session, SessionStatus, Speaker, EndReason, TranscriptEntry
from .events import (
    SessionEventBus, EventLogger,
    StatusChangedEvent, TranscriptEntryAddedEvent, VolumeChangedEvent,
    SpeechStartedEvent, SpeechEndedEvent, TranscriptSavedEvent, NotificationEvent,
)
from .simulated import SimulatedVoiceAgent
from ..config import Config
from ..infrastructure.timers import Scheduler
from ..infrastructure.voice import (
    VoiceAgentClient, RemoteVoiceAgentClient, VoiceAgentServer, VoiceEvent, is_placeholder_id,
)

logger = logging.getLogger("session_controller")

ClientFactory = Callable[[], VoiceAgentClient]


class SessionController:
    """
    Mediates between the UI, the backend and the attached voice agent client.

    Args:
        project_id: Project the interview belongs to
        backend: Object with `create_interview(project_id)` and `save_transcript(payload)`
        config: Configuration; the voice agent API key must be set
        scheduler: Timer source shared with the attached client
        event_bus: Bus the UI subscribes to; a new one is created if omitted
        client_factory: Builds the live client (defaults to RemoteVoiceAgentClient)
        simulated_factory: Builds the simulated client (defaults to SimulatedVoiceAgent)
    """

    def __init__(self,
                 project_id: int,
                 backend,
                 config: Config,
                 scheduler: Scheduler,
                 event_bus: Optional[SessionEventBus] = None,
                 client_factory: Optional[ClientFactory] = None,
                 simulated_factory: Optional[ClientFactory] = None):
        self.backend = backend
        self.config = config
        self.scheduler = scheduler
        self.session = Session(project_id=project_id)
        self.client: Optional[VoiceAgentClient] = None
        self._saving = False

        if event_bus is None:
            event_bus = SessionEventBus()
            event_bus.subscribe_all(EventLogger().handle_event)
        self.event_bus = event_bus

        self._client_factory = client_factory or self._default_client
        self._simulated_factory = simulated_factory or self._default_simulated_client

    # ------------------------------------------------------------------
    # Read access for rendering
    # ------------------------------------------------------------------

    @property
    def project_id(self) -> int:
        return self.session.project_id

    @property
    def session_id(self) -> Optional[str]:
        return self.session.session_id

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def muted(self) -> bool:
        return self.session.muted

    @property
    def volume_level(self) -> float:
        return self.session.volume_level

    @property
    def transcript(self) -> List[TranscriptEntry]:
        return list(self.session.transcript)

    @property
    def saved(self) -> bool:
        return self.session.saved

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_session(self) -> Optional[str]:
        """
        Ask the backend for a session id.

        Returns:
            The session id, or None when the backend failed (a notification is published)
            or the session has already left `idle`

        Raises:
            ConfigurationError: If the voice agent API key is not configured
        """
        self.config.require_vapi_api_key()

        if self.status != SessionStatus.IDLE:
            logger.warning(f"create_session() ignored: session is {self.status.value}")
            return None

        try:
            result = self.backend.create_interview(self.project_id)
            session_id = result["assistantId"]
        except Exception as e:
            logger.error("Failed to create interview for project %s: %s", self.project_id, e)
            self._notify("Failed to create interview", str(e), variant="destructive")
            return None

        logger.info(f"Backend returned session id {session_id}")
        self.session.session_id = session_id
        return session_id

    def start(self, session_id: str) -> bool:
        """
        Attach a client for `session_id` and start the call.

        Placeholder ids always get the simulated client. Handlers are registered before
        the client's `start()` runs so no early event is lost.

        Returns:
            True if the client started

        Raises:
            ConfigurationError: If the voice agent API key is not configured
        """
        self.config.require_vapi_api_key()

        if self.status != SessionStatus.IDLE:
            logger.warning(f"start() ignored: session is {self.status.value}")
            return False

        self.session.session_id = session_id
        self._set_status(SessionStatus.CONNECTING)

        try:
            if is_placeholder_id(session_id):
                logger.info("Placeholder session id; using simulated voice agent")
                client = self._simulated_factory()
            else:
                client = self._client_factory()
        except Exception as e:
            logger.error("Failed to build voice agent client: %s", e)
            self._notify("Failed to start interview", str(e), variant="destructive")
            self._set_status(SessionStatus.ENDED, reason="start-failed")
            return False

        self.client = client
        self._register_handlers(client)

        try:
            client.start(session_id)
        except Exception as e:
            logger.error("Failed to start interview %s: %s", session_id, e)
            self._notify(
                "Failed to start interview",
                "There was an error starting the interview. Please try again.",
                variant="destructive",
            )
            self.client = None
            self._stop_client(client)
            self._set_status(SessionStatus.ENDED, reason="start-failed")
            return False

        # The simulated client has no handshake to wait for
        if client.kind == "simulated" and self.status == SessionStatus.CONNECTING:
            self._set_status(SessionStatus.ACTIVE)

        logger.info(f"Interview {session_id} started with {client.kind} client")
        return True

    def toggle_mute(self) -> None:
        """Flip the local mute flag and forward it to the client. No-op unless active."""
        if self.client is None or self.status != SessionStatus.ACTIVE:
            logger.debug("toggle_mute() ignored: no active client")
            return

        self.session.muted = not self.session.muted
        self.client.set_muted(self.session.muted)

    def end(self, reason: EndReason = EndReason.USER_REQUESTED) -> None:
        """
        Stop the client, mark the session ended and save the transcript if needed.
        Calling it again after the session has ended does nothing.
        """
        reason = EndReason(reason)
        if self.status == SessionStatus.ENDED:
            logger.debug(f"end({reason.value}) ignored: session already ended")
            return

        client, self.client = self.client, None
        if client is not None:
            self._stop_client(client)

        self._set_status(SessionStatus.ENDED, reason=reason.value)
        self.persist_if_needed()

    def persist_if_needed(self) -> bool:
        """
        Save the transcript unless it is empty or already saved.

        Returns:
            True if this call stored the transcript
        """
        if self.session.saved or self._saving or not self.session.transcript:
            return False

        payload = self.session.build_save_payload()
        self._saving = True
        try:
            record = self.backend.save_transcript(payload)
        except Exception as e:
            logger.error("Failed to save transcript for %s: %s", self.session_id, e)
            self._notify("Failed to save transcript", str(e), variant="destructive")
            return False
        finally:
            self._saving = False

        self.session.saved = True
        self.session.saved_transcript_id = record.get("id") if isinstance(record, dict) else None

        self.event_bus.emit(TranscriptSavedEvent(
            self.session_id, time.time(), self.session.saved_transcript_id,
            len(payload["transcriptData"]), payload["duration"]
        ))
        self._notify("Transcript saved", "The interview transcript has been saved successfully.")
        return True

    def save_with_participant(self, participant_name: Optional[str]) -> bool:
        """
        Manual save with a participant name. Loses to an automatic save that already
        succeeded, and vice versa.
        """
        if self.session.saved:
            logger.info("Transcript already saved; manual save skipped")
            return False

        self.session.participant_name = (participant_name or "").strip() or None
        return self.persist_if_needed()

    def append_transcript_entry(self, speaker: Speaker, text: str) -> Optional[TranscriptEntry]:
        """Append a line stamped with the time it was received. Empty text is dropped."""
        if not text or not text.strip():
            return None

        entry = TranscriptEntry(speaker=Speaker(speaker), text=text, timestamp=self.scheduler.now())
        self.session.transcript.append(entry)

        self.event_bus.emit(TranscriptEntryAddedEvent(
            self.session_id, time.time(), entry.id, entry.speaker.value, entry.text,
            len(self.session.transcript) - 1
        ))
        return entry

    # ------------------------------------------------------------------
    # Client handlers
    # ------------------------------------------------------------------

    def _register_handlers(self, client: VoiceAgentClient) -> None:
        client.on(VoiceEvent.VOLUME_LEVEL, self._on_volume_level)
        client.on(VoiceEvent.CALL_START, self._on_call_start)
        client.on(VoiceEvent.CALL_END, self._on_call_end)
        client.on(VoiceEvent.SPEECH_START, self._on_speech_start)
        client.on(VoiceEvent.SPEECH_END, self._on_speech_end)
        client.on(VoiceEvent.MESSAGE, self._on_message)
        client.on(VoiceEvent.ERROR, self._on_error)

    def _on_volume_level(self, level: float) -> None:
        if self.status == SessionStatus.ENDED:
            return
        self.session.volume_level = float(level)
        self.event_bus.emit(VolumeChangedEvent(self.session_id, time.time(), self.session.volume_level))

    def _on_call_start(self) -> None:
        logger.info("Interview call started")
        if self.status == SessionStatus.CONNECTING:
            self._set_status(SessionStatus.ACTIVE)

    def _on_call_end(self) -> None:
        logger.info("Interview call ended by the voice agent")
        self.end(EndReason.REMOTE_ENDED)

    def _on_speech_start(self) -> None:
        logger.debug("Assistant started speaking")
        self.event_bus.emit(SpeechStartedEvent(self.session_id, time.time()))

    def _on_speech_end(self) -> None:
        logger.debug("Assistant stopped speaking")
        self.event_bus.emit(SpeechEndedEvent(self.session_id, time.time()))

    def _on_message(self, message: Dict[str, Any]) -> None:
        if self.status == SessionStatus.ENDED or not isinstance(message, dict):
            return
        if message.get("type") != "transcript" or message.get("transcriptType") == "partial":
            return

        speaker = Speaker.ASSISTANT if message.get("role") == "assistant" else Speaker.PARTICIPANT
        self.append_transcript_entry(speaker, message.get("transcript") or "")

    def _on_error(self, error: Any = None) -> None:
        logger.error("Voice agent error: %s", error)
        self._notify(
            "Interview error",
            "There was an error during the interview. Please try again.",
            variant="destructive",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_status(self, status: SessionStatus, reason: Optional[str] = None) -> None:
        previous = self.session.status
        if previous == status:
            return
        self.session.status = status
        logger.info(f"Session {self.session_id}: {previous.value} -> {status.value}")
        self.event_bus.emit(StatusChangedEvent(self.session_id, time.time(), previous.value, status.value, reason))

    def _stop_client(self, client: VoiceAgentClient) -> None:
        try:
            client.stop()
        except Exception as e:
            logger.error("Error stopping %s voice agent client: %s", client.kind, e)

    def _notify(self, title: str, description: str, variant: str = "default") -> None:
        self.event_bus.emit(NotificationEvent(self.session_id, time.time(), title, description, variant))

    def _default_client(self) -> VoiceAgentClient:
        server = VoiceAgentServer(self.config.require_vapi_api_key(), self.config.vapi_base_url)
        return RemoteVoiceAgentClient(server, self.scheduler, poll_interval=self.config.poll_interval)

    def _default_simulated_client(self) -> VoiceAgentClient:
        return SimulatedVoiceAgent(
            self.scheduler,
            volume_interval=self.config.volume_interval,
            call_start_delay=self.config.call_start_delay,
            script_interval=self.config.script_interval,
        )
