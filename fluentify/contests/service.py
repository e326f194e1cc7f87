"""
Contest submissions, leaderboards and statistics.

A learner gets exactly one submission per contest. The pre-check in
check_submission_window gives the friendly error; the unique constraint on
(contest_id, learner_id) is what actually guarantees it under concurrency.
Resubmissions are rejected, never merged into the stored row.
"""
from datetime import datetime
from typing import Callable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fluentify.auth.models import User
from fluentify.contests.models import Contest, ContestSubmission
from fluentify.contests.scoring import (
    ScoreResult, parse_questions, validate_answers, calculate_score, check_submission_window,
)
from fluentify.core.clock import isoformat, utc_now
from fluentify.core.config import DEFAULT_LEADERBOARD_LIMIT
from fluentify.core.errors import ContestNotFound, ContestAlreadySubmitted, InvalidAnswersFormat

# Submissions without a recorded time sort after every timed one
_UNTIMED = 2**31 - 1


def _rank_column():
    return func.rank().over(
        partition_by=ContestSubmission.contest_id,
        order_by=(
            ContestSubmission.score.desc(),
            func.coalesce(ContestSubmission.time_taken, _UNTIMED).asc(),
            ContestSubmission.submitted_at.asc(),
        ),
    )


class ContestSubmissionService:
    def __init__(self, db: Session, now: Callable[[], datetime] = utc_now):
        self.db = db
        self._now = now

    def get_contest(self, contest_id: int) -> Contest:
        contest = self.db.get(Contest, contest_id)
        if not contest:
            raise ContestNotFound()
        return contest

    def get_submission(self, contest_id: int, learner_id: int) -> ContestSubmission | None:
        return (
            self.db.query(ContestSubmission)
            .filter(ContestSubmission.contest_id == contest_id, ContestSubmission.learner_id == learner_id)
            .first()
        )

    def has_submitted(self, contest_id: int, learner_id: int) -> bool:
        return self.get_submission(contest_id, learner_id) is not None

    def submit(
        self,
        contest_id: int,
        learner_id: int,
        answers,
        time_taken: int | None = None,
    ) -> tuple[ContestSubmission, ScoreResult]:
        contest = self.get_contest(contest_id)
        now = self._now()

        check_submission_window(contest, now, self.has_submitted(contest_id, learner_id))

        questions = parse_questions(contest.questions)
        validation = validate_answers(questions, answers)
        if not validation.valid:
            raise InvalidAnswersFormat(validation.error)

        result = calculate_score(questions, answers)

        submission = ContestSubmission(
            contest_id=contest_id,
            learner_id=learner_id,
            answers=answers,
            score=result.score,
            total_correct=result.total_correct,
            total_questions=result.total_questions,
            percentage=result.percentage,
            time_taken=time_taken,
            submitted_at=now,
        )
        self.db.add(submission)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            print(f"[CONTEST] duplicate submission rejected contest_id={contest_id} learner_id={learner_id}", flush=True)
            raise ContestAlreadySubmitted()
        self.db.refresh(submission)

        print(
            f"[CONTEST] submitted contest_id={contest_id} learner_id={learner_id} "
            f"score={result.score}/{result.total_questions} pct={result.percentage}",
            flush=True,
        )
        return submission, result

    def leaderboard(self, contest_id: int, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> list[dict]:
        self.get_contest(contest_id)

        rank = _rank_column().label("rank")
        ranked = (
            self.db.query(
                ContestSubmission.learner_id.label("learner_id"),
                ContestSubmission.score.label("score"),
                ContestSubmission.percentage.label("percentage"),
                ContestSubmission.time_taken.label("time_taken"),
                ContestSubmission.submitted_at.label("submitted_at"),
                rank,
            )
            .filter(ContestSubmission.contest_id == contest_id)
            .subquery()
        )

        rows = (
            self.db.query(
                ranked.c.learner_id,
                ranked.c.score,
                ranked.c.percentage,
                ranked.c.time_taken,
                ranked.c.submitted_at,
                ranked.c.rank,
                User.name,
            )
            .select_from(ranked)
            .join(User, User.id == ranked.c.learner_id)
            .order_by(ranked.c.rank.asc(), ranked.c.submitted_at.asc())
            .limit(limit)
            .all()
        )
        return [
            {
                "rank": row.rank,
                "learnerId": row.learner_id,
                "learnerName": row.name,
                "score": row.score,
                "percentage": row.percentage,
                "timeTaken": row.time_taken,
                "submittedAt": isoformat(row.submitted_at),
            }
            for row in rows
        ]

    def learner_rank(self, contest_id: int, learner_id: int) -> int | None:
        ranked = (
            self.db.query(
                ContestSubmission.learner_id.label("learner_id"),
                _rank_column().label("rank"),
            )
            .filter(ContestSubmission.contest_id == contest_id)
            .subquery()
        )
        return (
            self.db.query(ranked.c.rank)
            .filter(ranked.c.learner_id == learner_id)
            .scalar()
        )

    def participant_count(self, contest_id: int) -> int:
        return (
            self.db.query(func.count(ContestSubmission.id))
            .filter(ContestSubmission.contest_id == contest_id)
            .scalar()
        ) or 0

    def statistics(self, contest_id: int) -> dict:
        self.get_contest(contest_id)
        row = (
            self.db.query(
                func.count(func.distinct(ContestSubmission.learner_id)),
                func.avg(ContestSubmission.score),
                func.max(ContestSubmission.score),
                func.min(ContestSubmission.score),
                func.avg(ContestSubmission.percentage),
            )
            .filter(ContestSubmission.contest_id == contest_id)
            .one()
        )
        participants, avg_score, highest, lowest, avg_pct = row
        return {
            "totalParticipants": participants or 0,
            "averageScore": round(float(avg_score), 2) if avg_score is not None else 0,
            "highestScore": highest or 0,
            "lowestScore": lowest or 0,
            "averagePercentage": round(float(avg_pct), 2) if avg_pct is not None else 0,
        }
