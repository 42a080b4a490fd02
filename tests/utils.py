"""Test helpers and shared constants."""

QUEUE_NAME = "queue/../foo"
MESSAGE_BODY = "message\nmessage"
LONG_TIMEOUT = 50_000
