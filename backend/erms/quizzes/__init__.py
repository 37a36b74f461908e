"""Quizzes, exams, assignments and their questions."""
