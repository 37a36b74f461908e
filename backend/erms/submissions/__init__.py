"""Student submissions and grading."""
