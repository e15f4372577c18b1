# models/__init__.py
# Инициализация моделей

from .participant import Participant
from .claim import Claim, CLAIM_TYPES, MIN_POINTS, MAX_POINTS
