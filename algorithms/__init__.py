from .math_tools import MathTools
from .fuzzy_match import FuzzyMatcher

__all__ = ["MathTools", "FuzzyMatcher"]
