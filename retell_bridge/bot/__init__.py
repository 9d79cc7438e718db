"""
Bot module for the spoken side of the Retell bridge.

Key components:
- VoiceAgent: Sends a caller turn to the agent backend with a voice-specific
  system prompt (short, conversational answers plus the recent transcript),
  keeps the caller's durable session handle up to date and turns empty
  replies into something that can be spoken.

Usage examples:
```python
from retell_bridge.bot import VoiceAgent

agent = VoiceAgent(gateway_client, registry, timeout_ms=30000)
reply = await agent.generate_reply(session, "What's on my calendar today?")
```
"""

from retell_bridge.bot.voice_agent import VoiceAgent, build_voice_prompt

__all__ = ["VoiceAgent", "build_voice_prompt"]
