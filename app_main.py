"""Application entry point for the Aura Quiz API."""

from __future__ import annotations

from aura_quiz.core.question_importer import QuestionImportError, load_question_drafts
from aura_quiz.core.quiz_manager import QuizManager
from aura_quiz.server.api_server import run_api_server
from aura_quiz.utils.logging_config import configure_logging
from aura_quiz.utils.settings import load_settings


def main() -> None:
    """Load settings, seed the question bank and serve the API."""
    settings = load_settings()
    logger = configure_logging(settings.log_level)
    logger.info("Starting Aura Quiz API...")

    quiz_manager = QuizManager(store_timeout_seconds=settings.store_timeout_seconds)
    if settings.seed_file is not None:
        try:
            drafts = load_question_drafts(settings.seed_file)
        except (OSError, QuestionImportError) as exc:
            logger.error("Could not seed questions from %s: %s", settings.seed_file, exc)
        else:
            added = quiz_manager.seed_questions(drafts)
            logger.info("Seeded %d questions from %s", len(added), settings.seed_file)

    logger.info("Serving on http://%s:%d/", settings.host, settings.port)
    run_api_server(
        quiz_manager,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
