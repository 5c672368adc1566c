#!/usr/bin/env python3
"""Personal document assistant CLI."""

import argparse
import logging
import os
import sys
import time

from config.settings import Settings
from orchestrator import AssistantOrchestrator
from retrieval.loaders import load_text, TextExtractionError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Personal assistant grounded in your uploaded documents"
    )
    parser.add_argument(
        "--user",
        "-u",
        type=int,
        required=True,
        help="User id (also used as the conversation key)"
    )
    parser.add_argument(
        "--provider",
        choices=["openai", "anthropic", "ollama"],
        default=None,
        help="LLM provider (default: openai)"
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Override the provider's default model"
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Directory for conversation, vector and token files (default: data)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    chat = subparsers.add_parser("chat", help="Send a message, or start an interactive session")
    chat.add_argument("--message", "-m", type=str, help="Single message to send")
    chat.add_argument("--show-thinking", action="store_true", help="Keep <think> blocks in replies")

    ingest = subparsers.add_parser("ingest", help="Index a .txt, .md, .log or .pdf file")
    ingest.add_argument("path", type=str, help="File to index")

    delete = subparsers.add_parser("delete", help="Remove an indexed file")
    delete.add_argument("filename", type=str, help="File name as listed by 'files'")

    subparsers.add_parser("files", help="List indexed files")
    subparsers.add_parser("clear", help="Forget the conversation history")
    subparsers.add_parser("stats", help="Show conversation memory usage")

    reminders = subparsers.add_parser("reminders", help="Print reminders for upcoming calendar events")
    reminders.add_argument("--once", action="store_true", help="Check once and exit instead of polling")

    return parser


def run_chat(orchestrator: AssistantOrchestrator, user_id: int, message, show_thinking: bool):
    if message:
        print(orchestrator.respond(user_id, message, show_thinking=show_thinking))
        return

    print("Type a message (Ctrl-D to quit).")
    while True:
        try:
            text = input("> ").strip()
        except EOFError:
            print()
            break
        if not text:
            continue
        print(orchestrator.respond(user_id, text, show_thinking=show_thinking))
        print()


def run_reminders(orchestrator: AssistantOrchestrator, once: bool):
    service = orchestrator.reminder_service(
        send=lambda user_id, text: print(f"[user {user_id}]\n{text}\n")
    )
    if once:
        sent = service.check()
        print(f"{sent} reminder(s) sent.")
        return

    print("Watching calendars for upcoming events (Ctrl-C to stop).")
    service.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        service.stop()


def main():
    """Main CLI entry point."""
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    overrides = {
        "data_dir": args.data_dir,
        "conversations_path": os.path.join(args.data_dir, "conversations.json"),
        "vectors_path": os.path.join(args.data_dir, "vectors.json"),
        "calendar_tokens_path": os.path.join(args.data_dir, "calendar_tokens.json"),
        "verbose": args.verbose,
    }
    if args.provider:
        overrides["llm_provider"] = args.provider
    if args.model:
        overrides["llm_model"] = args.model

    orchestrator = AssistantOrchestrator(settings=Settings(**overrides))

    try:
        if args.command == "chat":
            run_chat(orchestrator, args.user, args.message, args.show_thinking)
        elif args.command == "ingest":
            text = load_text(args.path)
            print(orchestrator.ingest_document(args.user, os.path.basename(args.path), text))
        elif args.command == "delete":
            print(orchestrator.delete_file(args.user, args.filename))
        elif args.command == "files":
            files = orchestrator.list_files(args.user)
            if not files:
                print("You haven't uploaded any documents yet.")
            for i, name in enumerate(files, 1):
                print(f"{i}. {name}")
        elif args.command == "clear":
            orchestrator.clear_history(args.user)
            print("Conversation history cleared.")
        elif args.command == "stats":
            stats = orchestrator.memory_stats(args.user)
            print(
                f"Context buffer: {stats.message_count}/{stats.max_size} turns "
                f"({stats.utilization_percent:.0f}%)"
            )
        elif args.command == "reminders":
            run_reminders(orchestrator, args.once)
    except (TextExtractionError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
