"""Authentication and authorization.

Learn: Users → email/password → bcrypt check → JWT access token.
The token's `sub` claim resolves to a CurrentIdentity used to scope
every matrix query to its owner.
"""
