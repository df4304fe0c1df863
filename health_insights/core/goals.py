"""
Goal tracking against summary statistics.

Goals live behind a GoalRepository; the service reads the summary of a
parsed dataset and writes updated goals back through the repository.
"""

from dataclasses import replace
from datetime import date
from typing import Protocol
from uuid import uuid4
import logging

from .models import Goal, GoalCheckpoint, GoalPeriod, GoalType, SummaryStatistics

logger = logging.getLogger(__name__)


class GoalRepository(Protocol):
    def load(self) -> list[Goal]:
        ...

    def save(self, goals: list[Goal]) -> None:
        ...


class InMemoryGoalRepository:
    """Single-session goal storage."""

    def __init__(self, goals: list[Goal] | None = None):
        self._goals = list(goals or [])

    def load(self) -> list[Goal]:
        return list(self._goals)

    def save(self, goals: list[Goal]) -> None:
        self._goals = list(goals)


class GoalService:
    """
    Create, update and score goals.

    Usage:
        service = GoalService(InMemoryGoalRepository())
        goal = service.create_goal(GoalType.STEPS, 8000, GoalPeriod.DAILY, 'Walk more')
        service.update_all(dataset.summary)
    """

    # Summary field read for each goal type
    SUMMARY_FIELDS = {
        GoalType.STEPS: 'average_steps',
        GoalType.SLEEP: 'average_sleep_duration',
        GoalType.HEART_RATE: 'average_resting_heart_rate',
        GoalType.WORKOUT: 'average_workout_duration',
    }

    def __init__(self, repository: GoalRepository):
        self.repository = repository

    def create_goal(
        self,
        goal_type: GoalType,
        target: float,
        period: GoalPeriod,
        title: str,
        description: str = '',
        start_date: date | None = None,
    ) -> Goal:
        if target <= 0:
            raise ValueError(f"Goal target must be positive, got {target}")

        goal = Goal(
            id=str(uuid4()),
            type=GoalType(goal_type),
            target=target,
            period=GoalPeriod(period),
            title=title,
            description=description,
            start_date=start_date or date.today(),
        )
        goals = self.repository.load()
        goals.append(goal)
        self.repository.save(goals)
        logger.info(f"Created {goal.type.value} goal {goal.id}")
        return goal

    def update_goal(self, updated: Goal) -> Goal:
        """Replace the stored goal with the same id. Unknown ids are ignored."""
        goals = self.repository.load()
        for i, goal in enumerate(goals):
            if goal.id == updated.id:
                goals[i] = updated
                self.repository.save(goals)
                break
        return updated

    def delete_goal(self, goal_id: str) -> None:
        goals = self.repository.load()
        self.repository.save([g for g in goals if g.id != goal_id])

    @classmethod
    def current_value(cls, goal: Goal, summary: SummaryStatistics) -> float:
        return getattr(summary, cls.SUMMARY_FIELDS[goal.type])

    @classmethod
    def calculate_progress(
        cls,
        goal: Goal,
        summary: SummaryStatistics,
        today: date | None = None,
    ) -> Goal:
        """
        Score a goal against the summary and append a checkpoint.

        Heart rate goals are lower-is-better: full progress at or below the
        target, falling off proportionally above it. Every other type is
        current / target, capped at 100. Returns a new Goal; the input is
        left untouched.
        """
        current = cls.current_value(goal, summary)

        if goal.target <= 0:
            # Goals built outside create_goal can carry a zero target
            progress = 0.0
        elif goal.type == GoalType.HEART_RATE:
            if current <= goal.target:
                progress = 100.0
            else:
                progress = max(0.0, 100 - (current - goal.target) / goal.target * 100)
        else:
            progress = min(100.0, current / goal.target * 100)

        completed = progress >= 100
        checkpoint = GoalCheckpoint(
            date=today or date.today(),
            value=current,
            target=goal.target,
            completed=completed,
        )
        return replace(
            goal,
            progress=progress,
            completed=completed,
            history=[*goal.history, checkpoint],
        )

    def update_all(self, summary: SummaryStatistics, today: date | None = None) -> list[Goal]:
        """Recalculate every stored goal and save the whole collection."""
        goals = [
            self.calculate_progress(goal, summary, today)
            for goal in self.repository.load()
        ]
        self.repository.save(goals)
        logger.info(
            f"Updated {len(goals)} goals, {sum(g.completed for g in goals)} completed"
        )
        return goals
