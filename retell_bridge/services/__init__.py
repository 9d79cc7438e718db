"""
Services module for the agent backend integration of the Retell bridge.

Key components:
- agent_backend: The ``AgentBackend`` protocol, the narrow request/response
  capability the call flow depends on.
- gateway_client: ``GatewayClient``, which implements that protocol over the
  agent gateway's WebSocket API. It owns a single connection shared by every
  call, reconnects before a request when needed and correlates streamed replies
  by run id.

Usage examples:
```python
from retell_bridge.config.settings import GatewaySettings
from retell_bridge.services.gateway_client import GatewayClient

async def ask_agent():
    client = GatewayClient(GatewaySettings(port=18789), model="openai/gpt-4o-mini")
    await client.connect()

    result = await client.send(
        session_key="retell:+15551234567",
        message="What's on my calendar today?",
        system_context="You are speaking on a phone call.",
        timeout_ms=30000,
    )
    if result.aborted:
        print("Timed out:", result.text)
    else:
        print(result.text)

    await client.close()
```
"""
