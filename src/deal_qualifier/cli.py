"""Command-line interface for the deal qualifier.

Provides subcommands for serving the HTTP API, evaluating a PDF locally
and printing configuration.  Heavy dependencies (uvicorn, provider SDKs)
are imported inside the subcommand that needs them so that
``deal-qualifier info`` works without API keys.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    deal-qualifier = "deal_qualifier.cli:main"

Usage examples::

    deal-qualifier serve --port 3001
    deal-qualifier evaluate proposal.pdf --session acme-rfp
    deal-qualifier evaluate proposal.pdf --json > result.json
    deal-qualifier info
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from dotenv import load_dotenv

from deal_qualifier.infrastructure.config import AppConfig, load_config_from_json

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="deal-qualifier",
        description=(
            "Deal Qualifier -- multi-stage RFP qualification pipeline and "
            "deal chat API."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file. Environment variables are used otherwise.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: from config, INFO).",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- serve -------------------------------------------------------------
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API.",
        description="Serve the upload / chat API with uvicorn.",
    )
    serve_parser.add_argument("--host", type=str, default=None, help="Bind host.")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port.")

    # -- evaluate ------------------------------------------------------------
    eval_parser = subparsers.add_parser(
        "evaluate",
        help="Evaluate a PDF locally.",
        description="Ingest a PDF, run every stage and print the evaluation.",
    )
    eval_parser.add_argument("pdf", type=str, help="Path to the RFP PDF.")
    eval_parser.add_argument(
        "--session",
        type=str,
        default=None,
        help="Session identifier (default: the configured default session).",
    )
    eval_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the evaluation as JSON instead of a table.",
    )
    eval_parser.add_argument(
        "--verdict",
        action="store_true",
        default=False,
        help="Also derive a GO / REVIEW / NO-GO verdict.",
    )

    # -- info ----------------------------------------------------------------
    subparsers.add_parser(
        "info",
        help="Show stages and configuration.",
        description="Print the stage pipeline and the effective configuration.",
    )

    return parser


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config:
        with open(args.config, encoding="utf-8") as fh:
            return load_config_from_json(fh.read())
    return AppConfig.from_env()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =========================================================================
# Subcommands
# =========================================================================

def _cmd_serve(args: argparse.Namespace, config: AppConfig) -> int:
    import uvicorn

    from deal_qualifier.api.app import create_default_app

    app = create_default_app(config)
    uvicorn.run(
        app,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_level=(args.log_level or config.server.log_level).lower(),
    )
    return 0


def _cmd_evaluate(args: argparse.Namespace, config: AppConfig) -> int:
    from dataclasses import replace

    from langchain_core.vectorstores import InMemoryVectorStore

    from deal_qualifier.graph.graph import EvaluationOrchestrator
    from deal_qualifier.graph.streaming import summarize_update
    from deal_qualifier.infrastructure.ingestion import DocumentIngestor
    from deal_qualifier.infrastructure.models import create_chat_model, create_embeddings
    from deal_qualifier.infrastructure.retrieval import VectorStoreRetriever
    from deal_qualifier.presentation.console import EvaluationDashboard
    from deal_qualifier.presentation.export import state_to_dict

    pipeline = config.pipeline
    if args.verdict:
        pipeline = replace(pipeline, include_verdict=True)
    session_id = args.session or config.server.default_session_id

    vector_store = InMemoryVectorStore(create_embeddings(config.model))
    chunks = DocumentIngestor(vector_store, config.ingestion).ingest_pdf_file(args.pdf, session_id)
    if chunks == 0:
        print(f"No extractable text in {args.pdf}", file=sys.stderr)
        return 1

    orchestrator = EvaluationOrchestrator(
        VectorStoreRetriever(vector_store, k=config.ingestion.retrieval_k),
        create_chat_model(config.model),
        config=pipeline,
    )
    dashboard = EvaluationDashboard(use_rich=not args.json, file=sys.stderr if args.json else None)

    state: dict[str, Any] = orchestrator.initial_state(session_id)
    for node_name, update in orchestrator.stream(state):
        dashboard.print_progress(node_name, summarize_update(node_name, update))
        for key, value in update.items():
            if key in ("documents", "stage_events"):
                state[key] = state.get(key, []) + list(value)
            else:
                state[key] = value

    if args.json:
        print(json.dumps(state_to_dict(state), indent=2))
    else:
        dashboard.print_evaluation(state)
    return 0


def _cmd_info(args: argparse.Namespace, config: AppConfig) -> int:
    from deal_qualifier import __version__
    from deal_qualifier.services.stages import BUILTIN_STAGES

    print(f"Deal Qualifier v{__version__}")
    print()
    print("Stages (in order):")
    for spec in BUILTIN_STAGES:
        if spec.criteria:
            print(f"  {spec.name:<20} max {spec.max_score:.2f}  ({len(spec.criteria)} criteria)")
            for criterion in spec.criteria:
                print(f"    - {criterion.name} ({criterion.weight:.2f})")
        else:
            print(f"  {spec.name:<20} red flags")
    print()
    print("Configuration:")
    print(json.dumps(config.to_dict(), indent=2))
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from deal_qualifier import __version__
        print(f"deal-qualifier {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    handlers: dict[str, Any] = {
        "serve": _cmd_serve,
        "evaluate": _cmd_evaluate,
        "info": _cmd_info,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    try:
        config = _load_config(args)
        _configure_logging(args.log_level or config.server.log_level)
        exit_code = handler(args, config)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
