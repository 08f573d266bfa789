"""Exceptions raised by the memory game engine."""


class GameError(Exception):
    pass


class EmptyDeckError(GameError):
    """A session cannot start on a deck without cards."""


class GenerationFailure(GameError):
    """The text-generation service failed or returned nothing usable."""


class PersistenceFailure(GameError):
    """A deck or game result could not be stored."""


class InvalidPhaseError(GameError):
    """A friend-mode transition was called in the wrong phase."""


class BlankInputError(GameError, ValueError):
    pass
