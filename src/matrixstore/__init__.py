"""matrixstore — account, token and matrix storage backend.

Users create an account, log in for a bearer token, and save "matrices":
ordered lists of column/transformation pairs, numbered per user.
"""

__version__ = "0.1.0"
