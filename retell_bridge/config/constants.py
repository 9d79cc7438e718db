"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names, canned utterances and defaults.
"""

# Logger name used throughout the application
LOGGER_NAME = "retell_bridge"

# Prefix for the session key sent to the agent gateway
SESSION_KEY_PREFIX = "retell:"

# Sliding transcript window kept per call
TRANSCRIPT_WINDOW = 10

# Default model used when no (or a malformed) override is configured
DEFAULT_RESPONSE_PROVIDER = "openai"
DEFAULT_RESPONSE_MODEL = "gpt-4o-mini"

# Inbound interaction types (Retell -> bridge)
INTERACTION_CALL_DETAILS = "call_details"
INTERACTION_PING_PONG = "ping_pong"
INTERACTION_RESPONSE_REQUIRED = "response_required"
INTERACTION_REMINDER_REQUIRED = "reminder_required"

# Canned utterances
REJECTED_CALLER_TEXT = "Sorry, this number is not authorized. Goodbye."
HOLDING_TEXT = "One moment please..."
PROMPT_FOR_INPUT_TEXT = "I'm here! What can I help you with?"
HICCUP_TEXT = "Sorry, I had a brief hiccup. Can you say that again?"
RAN_OUT_OF_TIME_TEXT = "Sorry, I ran out of time on that one. What were you asking?"
EMPTY_REPLY_TEXT = "Hmm, I'm not sure what to say. Can you try again?"

# Gateway fallbacks
GATEWAY_TIMEOUT_TEXT = "Sorry, I took too long. Can you try again?"
GATEWAY_ERROR_TEXT = "Sorry, something went wrong."
GATEWAY_ABORTED_TEXT = "Response was interrupted."

# Phrases in an agent reply that end the call after playback
FAREWELL_PHRASES = ("goodbye", "talk to you later", "bye for now", "have a good")
