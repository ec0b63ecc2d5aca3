"""
Models package initialization
"""

from online_exam.models.session import ExamState, Stage

__all__ = [
    "ExamState",
    "Stage",
]
