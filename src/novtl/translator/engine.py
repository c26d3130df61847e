"""Translation engine with chunking, context carry-over and retry."""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from novtl.cancel import CancelToken, check
from novtl.config import TranslationConfig, get_config
from novtl.errors import AbortedByUser, MissingCredential, classify_error
from novtl.models import (
    AppSettings,
    ChunkState,
    NovelProject,
    TranslationMode,
    TranslationResult,
    resolve_provider_config,
)
from novtl.providers.base import ProviderAdapter
from novtl.providers.factory import create_adapter
from novtl.translator.chunker import split_text
from novtl.translator.glossary import GlossaryMatcher, format_glossary_block

logger = structlog.get_logger()

PARAGRAPH_BREAK = "\n\n"


def _ignore(_: str) -> None:
    pass


@dataclass
class TranslationSession:
    """Working state for one translate call. Owned by the engine, never shared."""

    chunks: list[str]
    matcher: GlossaryMatcher
    cancel: Optional[CancelToken] = None
    output: str = ""
    previous_source: str = ""
    index: int = 0
    states: list[ChunkState] = field(default_factory=list)
    attempts: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.states = [ChunkState.PENDING] * len(self.chunks)
        self.attempts = [0] * len(self.chunks)

    def mark(self, state: ChunkState) -> None:
        self.states[self.index] = state
        logger.debug(
            "chunk_state",
            chunk=self.index,
            state=state.value,
            attempt=self.attempts[self.index],
        )


class TranslationEngine:
    """Translate long documents chunk by chunk through one provider adapter."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        config: Optional[TranslationConfig] = None,
    ):
        """Initialize the translation engine.

        Args:
            adapter: Provider adapter used for every request
            config: Translation configuration
        """
        self.adapter = adapter
        self.config = config or get_config().translation

    # ------------------------------------------------------------------
    # Prompt construction
    # ------------------------------------------------------------------

    def _build_context_block(
        self,
        session: TranslationSession,
        previous_chapter_context: Optional[str],
    ) -> str:
        if session.index == 0:
            if previous_chapter_context:
                return (
                    "\n[STORY CONTEXT FROM PREVIOUS CHAPTER]\n"
                    f"(The story continues from here)...{previous_chapter_context}\n"
                )
            return ""
        tail = session.previous_source[-self.config.context_tail:]
        return f"\n[PREVIOUS CHUNK CONTEXT]\n...{tail}\n"

    def _build_standard_system(self, project: NovelProject) -> str:
        return (
            f"Role: Professional Novel Translator. Target: {project.target_language}. "
            f"Style: {project.translation_instruction}. "
            "Rules: 1. Translate ONLY [CURRENT SOURCE]. 2. No glossary/context in output."
        )

    def _build_draft_system(self, project: NovelProject) -> str:
        return (
            f"Role: Translator. Task: Translate STRICTLY to {project.target_language}. "
            "Focus on accuracy and meaning."
        )

    def _build_polish_system(self, project: NovelProject) -> str:
        return (
            "Role: Professional Novel Editor. Rewrite the provided draft into high-quality "
            f"{project.target_language} novel prose. Style: {project.translation_instruction}."
        )

    def _build_polish_prompt(self, draft: str) -> str:
        return f"[DRAFT TEXT]\n{draft}\n\n[INSTRUCTION]\nPolish this draft. Output ONLY final text."

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _pause(self, seconds: float, cancel: Optional[CancelToken]) -> None:
        """Suspend for backoff or pacing; wakes early and aborts on cancellation."""
        if cancel is None:
            await asyncio.sleep(seconds)
        else:
            await cancel.sleep(seconds)

    async def _attempt_chunk(
        self,
        session: TranslationSession,
        chunk: str,
        project: NovelProject,
        on_chunk: Callable[[str], None],
        mode: TranslationMode,
        previous_chapter_context: Optional[str],
    ) -> str:
        """One attempt at a chunk. Returns only the text streamed by this attempt."""
        cancel = session.cancel
        glossary_block = format_glossary_block(session.matcher.relevant_entries(chunk))
        context_block = self._build_context_block(session, previous_chapter_context)

        if mode == "high_quality":
            draft = await self.adapter.send_once(
                f"{glossary_block}{context_block}\n[SOURCE]\n{chunk}",
                self._build_draft_system(project),
                temperature=self.config.draft_temperature,
                cancel=cancel,
            )
            check(cancel)
            system_instruction = self._build_polish_system(project)
            prompt = self._build_polish_prompt(draft)
            temperature = self.config.polish_temperature
        else:
            system_instruction = self._build_standard_system(project)
            prompt = f"{glossary_block}{context_block}\n[CURRENT SOURCE]\n{chunk}"
            temperature = self.config.standard_temperature

        return await self.adapter.send_streaming(
            prompt,
            system_instruction,
            on_chunk,
            cancel,
            temperature=temperature,
        )

    async def _translate_chunk(
        self,
        session: TranslationSession,
        chunk: str,
        project: NovelProject,
        on_chunk: Callable[[str], None],
        mode: TranslationMode,
        previous_chapter_context: Optional[str],
    ) -> str:
        """Translate one chunk with retry and exponential backoff."""
        last_error = None
        max_attempts = self.config.max_attempts

        for attempt in range(max_attempts):
            session.attempts[session.index] = attempt + 1
            session.mark(ChunkState.ATTEMPTING)
            check(session.cancel)
            try:
                text = await self._attempt_chunk(
                    session, chunk, project, on_chunk, mode, previous_chapter_context
                )
                session.mark(ChunkState.SUCCEEDED)
                return text
            except AbortedByUser:
                raise
            except Exception as e:
                if session.cancel is not None and session.cancel.cancelled:
                    raise AbortedByUser() from e

                error = classify_error(e)
                if not error.retryable:
                    session.mark(ChunkState.FAILED)
                    if error is e:
                        raise
                    raise error from e

                last_error = error
                if attempt + 1 < max_attempts:
                    session.mark(ChunkState.RETRYING)
                    delay = self.config.backoff_base_ms * (2 ** (attempt + 1)) / 1000
                    logger.warning(
                        "chunk_retry",
                        chunk=session.index,
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(e),
                    )
                    await self._pause(delay, session.cancel)

        session.mark(ChunkState.FAILED)
        logger.error(
            "chunk_failed",
            chunk=session.index,
            attempts=max_attempts,
            error=str(last_error),
        )
        raise last_error

    async def translate(
        self,
        text: str,
        project: NovelProject,
        on_chunk: Optional[Callable[[str], None]] = None,
        cancel: Optional[CancelToken] = None,
        mode: TranslationMode = "standard",
        previous_chapter_context: Optional[str] = None,
    ) -> TranslationResult:
        """Translate a whole document.

        Chunks are processed strictly in order. Each fragment the provider
        streams is forwarded to ``on_chunk`` as it arrives; a failed chunk
        stops the whole run rather than being skipped.

        Args:
            text: Source text
            project: Project supplying target language, style and glossary
            on_chunk: Callback for incremental output
            cancel: Cancellation token
            mode: "standard" (single streamed pass) or "high_quality"
                (hidden draft, then a streamed polish pass)
            previous_chapter_context: Optional text from the previous chapter
                given to the first chunk as story context

        Returns:
            TranslationResult with the trimmed full translation

        Raises:
            MissingCredential: before any network call if the key is unusable
            AbortedByUser: if ``cancel`` fires
            NovtlError: the classified error of a chunk that exhausted its retries
        """
        if mode not in ("standard", "high_quality"):
            raise ValueError(f"Unknown translation mode: {mode}")
        if not self.adapter.config.has_plausible_key():
            raise MissingCredential(self.adapter.config.provider)
        check(cancel)

        emit = on_chunk or _ignore
        chunks = [c for c in split_text(text, self.config.chunk_size) if c.strip()]
        session = TranslationSession(
            chunks=chunks,
            matcher=GlossaryMatcher(project.glossary),
            cancel=cancel,
        )

        logger.info(
            "translation_start",
            provider=self.adapter.config.provider,
            model=self.adapter.config.model,
            mode=mode,
            chunks=len(chunks),
            glossary_terms=len(session.matcher),
        )

        for index, chunk in enumerate(chunks):
            session.index = index
            check(cancel)
            logger.debug("chunk_start", chunk=index, total=len(chunks), chars=len(chunk))

            translated = await self._translate_chunk(
                session, chunk, project, emit, mode, previous_chapter_context
            )
            session.output += translated
            if not session.output.endswith(PARAGRAPH_BREAK):
                session.output += PARAGRAPH_BREAK
                emit(PARAGRAPH_BREAK)
            session.previous_source = chunk

            if index < len(chunks) - 1:
                await self._pause(self.config.chunk_delay_ms / 1000, cancel)

        logger.info("translation_complete", chunks=len(chunks), chars=len(session.output))
        return TranslationResult(
            text=session.output.strip(),
            detected_language=None,
            chunks=len(chunks),
            chunk_states=session.states,
            attempts=session.attempts,
        )


async def translate_text(
    text: str,
    settings: AppSettings,
    project: NovelProject,
    on_chunk: Optional[Callable[[str], None]] = None,
    cancel: Optional[CancelToken] = None,
    mode: Optional[TranslationMode] = None,
    previous_chapter_context: Optional[str] = None,
    config: Optional[TranslationConfig] = None,
) -> TranslationResult:
    """Resolve the active provider from settings and translate ``text``.

    Fails fast with :class:`MissingCredential` before any adapter is built.
    """
    provider_config = resolve_provider_config(settings)
    if not provider_config.has_plausible_key():
        raise MissingCredential(provider_config.provider)

    adapter = create_adapter(provider_config)
    try:
        engine = TranslationEngine(adapter, config)
        return await engine.translate(
            text,
            project,
            on_chunk=on_chunk,
            cancel=cancel,
            mode=mode or settings.translation_mode,
            previous_chapter_context=previous_chapter_context,
        )
    finally:
        await adapter.aclose()
