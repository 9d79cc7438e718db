"""
Retell Voice Bridge - Retell Custom LLM to agent gateway bridge

This application lets phone callers talk to the same agent that is available over
text. Retell handles the telephony, speech recognition and speech synthesis and
connects to the bridge with its Custom LLM WebSocket protocol; the bridge turns
every caller turn into a single request against the agent gateway and speaks the
reply back.

Architecture Overview:
- FastAPI server exposing one WebSocket connection per call for Retell
- Caller allowlist checked when the call details arrive
- Shared WebSocket client for the agent gateway, correlating replies by run id
- Per-caller session keys so a caller's conversation survives reconnects

Key Components:
- bot: The voice agent (voice system prompt, reply fallbacks)
- config: Application-wide configuration, constants, and logging setup
- handlers: Frame handlers for the Retell Custom LLM protocol
- models: Frame schemas, call sessions and the session registry
- services: The agent backend protocol and the gateway client implementing it
- websocket_manager: Central handler for call connections and frame routing
- bridge_server: Start/stop/status of a running bridge

Getting Started:
1. Set up environment variables:
   - GATEWAY_HOST / GATEWAY_PORT: Where the agent gateway listens (default 127.0.0.1:18789)
   - GATEWAY_TOKEN or GATEWAY_PASSWORD: Gateway credentials
   - RETELL_ALLOW_FROM: Comma separated phone numbers allowed to call
   - RETELL_WS_PORT: Port to run the server on (default 8765)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Retell agent's Custom LLM URL at your server:
   - wss://your-server/llm-websocket
"""
