"""
Domain layer for email intake.

This layer contains:
- Result types (ParseResult: explicit success/failure from parsing)
- Parsed value objects (EmailAddress, Mailbox, S3Location, ...)
- The SES notification boundary parser
- Business logic (email intake pipeline)
"""
