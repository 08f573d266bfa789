"""Configuration constants for the memory game."""

# Scoring
EASY_POINTS = 10
MEDIUM_POINTS = 20
HARD_POINTS = 30
STREAK_BONUS_THRESHOLD = 5    # Streak entering a question needed for the bonus
SPEED_BONUS_PER_SECOND = 2    # Speed round: points per whole second left

# Speed round
SPEED_ROUND_DURATION_MS = 30000  # Per card
TIMER_TICK_MS = 100

# Delay between revealing an answer and moving to the next card
REVEAL_DELAY_MS = 1500

# Quiz options
DEFAULT_OPTION_COUNT = 4
PLACEHOLDER_PREFIX = 'Option'

# Friend mode
FRIEND_CORRECT_POINTS = 20

# Results
HISTORY_LIMIT = 10
