"""Exceptions raised before the interactive session takes over the terminal."""


class TuiderError(Exception):
    pass


class InputUnavailable(TuiderError):
    """Neither a file argument nor piped text (nor a keyboard) is available."""


class EmptyDocument(TuiderError):
    """The input contained no words to read."""


class InvalidOption(TuiderError):
    """A command-line option has a value outside its allowed set."""
