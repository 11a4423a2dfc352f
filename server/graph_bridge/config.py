"""
Bridge Configuration

Dispatch and result-channel settings, alongside the runtime settings in
core/config.py.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class MCPSettings(BaseSettings):
    """Bridge specific configuration"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server identity
    MCP_SERVER_NAME: str = "project-graph-bridge"
    MCP_SERVER_VERSION: str = "1.0.0"

    # Dispatch
    MCP_TARGET_LABEL: str = "main"
    MCP_TOOL_ACK_DELAY_MS: int = 100

    # Result channel
    MCP_RESULT_TTL_SECONDS: int = 300
    MCP_MAX_TRACKED_RESULTS: int = 500
    MCP_SSE_HEARTBEAT_SECONDS: float = 30.0

    # File queue transport
    MCP_QUEUE_DIR: str = ".mcp-queue"
    MCP_QUEUE_POLL_MS: int = 50

    @property
    def tool_ack_delay_seconds(self) -> float:
        """Acknowledgement delay for tool calls, in seconds"""
        return max(self.MCP_TOOL_ACK_DELAY_MS, 0) / 1000.0


mcp_settings = MCPSettings()
