"""Slack channel configuration."""

from pydantic import BaseModel, Field, SecretStr, model_validator


class SlackReactionConfig(BaseModel):
    """Emoji names used to show question-processing progress."""

    seen: str = Field(default="eyes", min_length=1)
    searching: str = Field(default="mag", min_length=1)
    thinking: str = Field(default="brain", min_length=1)
    done: str = Field(default="white_check_mark", min_length=1)
    not_found: str = Field(default="question", min_length=1)
    error: str = Field(default="x", min_length=1)


class SlackChannelConfig(BaseModel):
    """Slack Socket Mode channel configuration."""

    enabled: bool = False  # Disabled by default
    bot_token: SecretStr = SecretStr("")
    app_token: SecretStr = SecretStr("")
    similarity_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    reconnect_delay_seconds: float = Field(default=5.0, ge=0.0, le=300.0)
    worker_count: int = Field(default=4, ge=1, le=64)
    thread_analysis_delay_seconds: float = Field(default=5.0, ge=0.0, le=300.0)
    processed_messages_max: int = Field(default=0, ge=0)
    reactions: SlackReactionConfig = Field(default_factory=SlackReactionConfig)

    @model_validator(mode="after")
    def validate_tokens(self) -> "SlackChannelConfig":
        """Validate required tokens when Slack is enabled."""
        if self.enabled:
            bot_token = self.bot_token.get_secret_value()
            app_token = self.app_token.get_secret_value()
            if not bot_token:
                raise ValueError("Slack enabled but bot_token not set")
            if not app_token:
                raise ValueError("Slack enabled but app_token not set")
            if not bot_token.startswith("xoxb-"):
                raise ValueError("Slack bot_token must be a bot token (xoxb-)")
            if not app_token.startswith("xapp-"):
                raise ValueError("Slack app_token must be an app-level token (xapp-)")
        return self

    @classmethod
    def from_settings(cls, settings) -> "SlackChannelConfig":
        return cls(
            enabled=settings.SLACK_SOCKET_MODE_ENABLED,
            bot_token=SecretStr(settings.SLACK_BOT_TOKEN),
            app_token=SecretStr(settings.SLACK_APP_TOKEN),
            similarity_threshold=settings.QA_SIMILARITY_THRESHOLD,
            reconnect_delay_seconds=settings.SOCKET_RECONNECT_DELAY_SECONDS,
            worker_count=settings.EVENT_WORKER_COUNT,
            thread_analysis_delay_seconds=settings.THREAD_ANALYSIS_DELAY_SECONDS,
            processed_messages_max=settings.PROCESSED_MESSAGES_MAX,
        )
