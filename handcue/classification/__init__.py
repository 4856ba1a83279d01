"""Classification module — per-frame gesture rules."""

from handcue.classification.rules import FingerStates, RuleBasedClassifier, finger_states

__all__ = ["FingerStates", "RuleBasedClassifier", "finger_states"]
