"""Console entry point."""
import argparse
import logging
import sys
from typing import List, Optional

from vocadrill.app import DrillApp
from vocadrill.config import settings
from vocadrill.logging_config import setup_logging
from vocadrill.models.vocabulary_models import LanguageDirection
from vocadrill.services.session_service import SessionService

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vocadrill", description="Drill Latvian/Dutch vocabulary.")
    parser.add_argument(
        "--direction",
        choices=[d.value for d in LanguageDirection],
        default=LanguageDirection.LV_TO_NL.value,
    )
    parser.add_argument(
        "--round-size",
        type=int,
        choices=settings.learning.round_options,
        default=settings.learning.default_round_size,
    )
    parser.add_argument("--category", action="append", default=[], help="may be repeated")
    parser.add_argument("--stats", action="store_true", help="show mastery stats and exit")
    return parser.parse_args(argv)


def play(session: SessionService, args: argparse.Namespace) -> None:
    """Run rounds in the terminal until the user quits."""
    if session.resume():
        print(f"Resuming round at item {session.current_index + 1}/{len(session.round_items)}")
    else:
        session.start(LanguageDirection(args.direction), args.round_size, args.category)
    print(f"Streak: {session.streak} day(s)")

    while True:
        while not session.is_round_complete:
            if not session.is_answered:
                answer = input(f"[{session.current_index + 1}/{len(session.round_items)}] {session.prompt}: ")
                if answer.strip() == ":q":
                    session.exit()
                    return
                feedback = session.submit_answer(answer)
                if feedback.is_correct:
                    print("Close call!" if feedback.is_close_call else "Correct!")
                elif feedback.can_retry:
                    print("Try again.")
                else:
                    print(f"Correct answer: {feedback.correct_translation}")
            if session.is_answered:
                session.advance()

        print(f"Score: {session.score}/{len(session.round_items)} ({session.accuracy}%)")
        if session.is_marathon:
            name = input("Your name for the leaderboard: ")
            for position, entry in enumerate(session.save_score(name), start=1):
                print(f"{position:2}. {entry.name} {entry.score} ({entry.accuracy}%)")
        if input("Another round? [y/N] ").strip().lower() != "y":
            session.exit()
            return
        session.restart()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging("Starting vocadrill ...")

    app = DrillApp()
    try:
        session = app.start()
        if args.stats:
            stats = app.progress.get_mastery_stats(app.vocabulary.get_base_vocabulary())
            print(f"Mastered: {stats.mastered}  Learning: {stats.learning}  New: {stats.new_items}")
            return 0
        play(session, args)
    except (KeyboardInterrupt, EOFError):
        logger.info("Interrupted, round kept for resume")
    finally:
        app.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
