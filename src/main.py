"""Omoi terminal entry point."""

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError

from src.chat.context import ChatContextBuilder
from src.chat.mode_detector import create_mode_detector
from src.chat.modes import get_symbol_for_mode
from src.chat.persistence import ConfigService, ConversationService
from src.chat.service import ChatService
from src.chat.thought_log import ThoughtProcessLogger
from src.config import settings
from src.llm.models import models_for_category
from src.llm.providers import AnthropicProvider, DeepSeekProvider, OpenAIProvider
from src.llm.resolver import ModelProviderResolver
from src.memory.embeddings import OpenAIEmbeddingProvider, VectorProviderResolver
from src.memory.models import VectorStorageProvider
from src.memory.storage import (
    LocalVectorStorage,
    QdrantStorage,
    SupabaseStorage,
    VectorStorageResolver,
)
from src.memory.storer import ChatMemoryStorer

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)

HELP = "Commands: /new, /save [path], /load <path>, /models, /quit"

MODEL_ROLES = ("chat", "thought", "memory", "vector")


async def build_chat_service() -> ChatService:
    """Wire providers, storage and services from settings and ``config.json``."""
    config_service = ConfigService()
    config = await config_service.load_config()

    thought_log = ThoughtProcessLogger()
    provider_resolver = ModelProviderResolver(
        anthropic=AnthropicProvider(),
        openai=OpenAIProvider(),
        deepseek=DeepSeekProvider(),
    )
    vector_resolver = VectorProviderResolver(
        OpenAIEmbeddingProvider(dimensions=settings.vector_dimensions)
    )
    storage_resolver = VectorStorageResolver({
        VectorStorageProvider.QDRANT: QdrantStorage(url=config.qdrant_url),
        VectorStorageProvider.SUPABASE: SupabaseStorage(url=config.supabase_url),
        VectorStorageProvider.LOCAL: LocalVectorStorage(),
    })

    return ChatService(
        config_service=config_service,
        provider_resolver=provider_resolver,
        mode_detector=create_mode_detector(provider_resolver, thought_log),
        context_builder=ChatContextBuilder(vector_resolver, storage_resolver),
        memory_storer=ChatMemoryStorer(
            provider_resolver, vector_resolver, storage_resolver, thought_log
        ),
        conversation_service=ConversationService(
            Path(config.saved_conversations_path).expanduser()
        ),
        thought_log=thought_log,
    )


def describe_models() -> str:
    """One line per role listing the registry models that can fill it."""
    return "\n".join(
        f"{role}: {', '.join(models_for_category(role))}" for role in MODEL_ROLES
    )


async def handle_command(service: ChatService, text: str) -> str | None:
    """Run a slash command and return what to print; None if ``text`` is chat."""
    if text == "/new":
        await service.clear_conversation()
        return "Started a new conversation."
    if text == "/models":
        return describe_models()
    if text == "/save" or text.startswith("/save "):
        arg = text[len("/save") :].strip()
        path = Path(arg).expanduser() if arg else service.new_save_path()
        try:
            await service.save_to_file(path)
        except OSError as exc:
            logger.exception("Saving to %s failed", path)
            return f"Error: could not save to {path}: {exc}"
        return f"Saved to {path}"
    if text.startswith("/load "):
        path = Path(text[len("/load ") :].strip()).expanduser()
        try:
            loaded = await service.load_from_file(path)
        except (OSError, ValidationError) as exc:
            logger.exception("Loading %s failed", path)
            return f"Error: could not load {path}: {exc}"
        if not loaded:
            return f"No conversation at {path}"
        return f"Loaded {len(service.messages)} messages"
    return None


async def run_console() -> None:
    service = await build_chat_service()
    if await service.restore_auto_save():
        logger.info("Restored %d messages from auto-save", len(service.messages))
    print(HELP)

    while True:
        try:
            text = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break
        if not text:
            continue
        if text == "/quit":
            break

        output = await handle_command(service, text)
        if output is not None:
            print(output)
            continue

        try:
            reply, mode = await service.send_message(text)
        except Exception as exc:
            print(f"Error: {exc}")
            continue
        print(f"[{get_symbol_for_mode(mode)} {mode}] {reply.content}")

    await service.auto_save()


def main() -> None:
    asyncio.run(run_console())


if __name__ == "__main__":
    main()
