"""Command-line front end: run one workflow step and print fragments as they arrive."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional, TextIO

from paper_architect.config import get_config
from paper_architect.config.loader import PROVIDER_PRESETS, find_preset
from paper_architect.core.errors import (
    InputError,
    MissingCredentialError,
    PaperArchitectError,
    StorageError,
)
from paper_architect.core.logging_config import setup_logging
from paper_architect.models.gateway import GenerationGateway
from paper_architect.models.prompts import build_strategist_input, default_instructions
from paper_architect.models.types import GenerationRequest, ProviderConfig, WorkflowStep

if TYPE_CHECKING:
    from paper_architect.config.loader import Config
    from paper_architect.storage.records import RecordStore

logger = logging.getLogger(__name__)


def _read_optional(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Cannot read {path}: {e}") from e


def _title_from(content: str) -> str:
    for line in content.splitlines():
        line = line.strip()
        if line.startswith("[PAPER TITLE]:"):
            return line.split(":", 1)[1].strip() or "Untitled"
    return "Untitled"


async def resolve_provider(
    config: Config, store: Optional[RecordStore], args: argparse.Namespace
) -> ProviderConfig:
    """CLI flags, then stored settings, then config/env.

    Empty values fall through to the next source field by field.
    """
    configured = config.provider.to_provider_config()
    stored = None
    if store is not None:
        try:
            stored = await store.get_settings()
        except StorageError as e:
            logger.warning("Stored settings unavailable: %s", e)
            stored = None
    provider = ProviderConfig(
        api_key=args.api_key or (stored.api_key if stored else "") or configured.api_key,
        base_url=args.base_url or (stored.base_url if stored else "") or configured.base_url,
        model=args.model or (stored.model if stored else "") or configured.model,
    )
    if not provider.api_key:
        raise MissingCredentialError(provider.base_url)
    return provider


async def build_request(
    args: argparse.Namespace, provider: ProviderConfig, store: Optional[RecordStore]
) -> GenerationRequest:
    step = WorkflowStep(args.step)
    user_input = args.input or _read_optional(args.input_file) or ""
    if step is WorkflowStep.STRATEGIST and (args.variables_file or args.outline_file):
        user_input = build_strategist_input(
            _read_optional(args.variables_file) or "", _read_optional(args.outline_file) or ""
        )
    blueprint = _read_optional(args.blueprint_file)
    if blueprint is None and args.blueprint_id and store is not None:
        record = await store.get_blueprint(args.blueprint_id)
        blueprint = record.content if record else None
    reference_text = None
    if args.reference_pdf:
        from paper_architect.core.reference_text import extract_pdf_text

        reference_text = extract_pdf_text(args.reference_pdf).full_text
    return GenerationRequest(
        step=step,
        user_input=default_instructions(step, user_input),
        blueprint=blueprint,
        composed_text=_read_optional(args.composed_file),
        reference_text=reference_text,
        provider=provider,
    )


async def run_generate(
    args: argparse.Namespace,
    config: Config,
    store: Optional[RecordStore] = None,
    gateway: Optional[GenerationGateway] = None,
    out: TextIO = sys.stdout,
) -> int:
    """Stream one step to ``out``. Fragments already printed stay; a failure prints an inline error."""
    gateway = gateway or GenerationGateway(
        max_tokens=config.generation.max_tokens, timeout=config.generation.timeout_seconds
    )
    parts: list[str] = []
    try:
        provider = await resolve_provider(config, store, args)
        request = await build_request(args, provider, store)
        async with gateway.generate(request) as stream:
            async for fragment in stream:
                parts.append(fragment)
                out.write(fragment)
                out.flush()
        out.write("\n")
    except PaperArchitectError as e:
        logger.error("Generation failed: %s", e)
        out.write(f"\nError: {e}\n")
        return 1
    if args.save_as and store is not None:
        content = "".join(parts)
        if request.step is WorkflowStep.STRATEGIST:
            await store.save_blueprint(args.save_as, _title_from(content), content)
        elif request.step is WorkflowStep.COMPOSER:
            await store.save_composition(args.save_as, args.blueprint_id or "", content)
        else:
            logger.warning("Review results are not stored; --save-as ignored")
    return 0


async def run_settings(args: argparse.Namespace, store: RecordStore, out: TextIO = sys.stdout) -> int:
    current = await store.get_settings()
    preset = find_preset(args.preset) if args.preset else None
    if args.preset and preset is None:
        out.write(f"Error: unknown preset '{args.preset}'\n")
        return 1
    base_url = args.base_url or (preset.base_url if preset else None) or (current.base_url if current else None)
    model = args.model or (preset.model if preset else None) or (current.model if current else None)
    api_key = args.api_key or (current.api_key if current else "")
    if not (base_url and model):
        out.write("Error: base URL and model are required\n")
        return 1
    await store.save_settings(ProviderConfig(api_key=api_key, base_url=base_url, model=model))
    out.write(f"Saved settings: {base_url} / {model}\n")
    return 0


async def run_blueprints(store: RecordStore, out: TextIO = sys.stdout) -> int:
    for record in await store.list_blueprints():
        out.write(f"{record.id}\t{record.updated_at}\t{record.title}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paper-architect", description=__doc__)
    parser.add_argument("--config", help="YAML config path")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Run one workflow step")
    gen.add_argument("--step", type=int, choices=[1, 2, 3], required=True)
    gen.add_argument("--input", help="User input / instructions")
    gen.add_argument("--input-file")
    gen.add_argument("--variables-file", help="Step 1: variable definition table")
    gen.add_argument("--outline-file", help="Step 1: outline material")
    gen.add_argument("--blueprint-file", help="Step 2: blueprint text")
    gen.add_argument("--blueprint-id", help="Step 2: stored blueprint id")
    gen.add_argument("--composed-file", help="Step 3: composed text")
    gen.add_argument("--reference-pdf", help="Step 2: style reference PDF")
    gen.add_argument("--save-as", help="Store the result under this id")
    gen.add_argument("--api-key")
    gen.add_argument("--base-url")
    gen.add_argument("--model")

    st = sub.add_parser("settings", help="Persist provider settings")
    st.add_argument("--preset", help="; ".join(p.name for p in PROVIDER_PRESETS))
    st.add_argument("--api-key")
    st.add_argument("--base-url")
    st.add_argument("--model")

    sub.add_parser("blueprints", help="List stored blueprints")
    return parser


async def _run(args: argparse.Namespace, config: Config) -> int:
    from paper_architect.storage.records import RecordStore

    store = RecordStore(config.storage.url)
    try:
        if args.command == "generate":
            return await run_generate(args, config, store)
        if args.command == "settings":
            return await run_settings(args, store)
        return await run_blueprints(store)
    except StorageError as e:
        logger.error("%s", e)
        sys.stdout.write(f"Error: {e}\n")
        return 1
    finally:
        await store.close()


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    config = get_config(args.config)
    setup_logging(level=config.logging.level, use_json=config.logging.use_json)
    sys.exit(asyncio.run(_run(args, config)))


if __name__ == "__main__":
    main()
