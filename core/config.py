"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from pydantic import model_validator


class RedisSettings(BaseModel):
    # Celery broker / result backend; invites are only dispatched when set
    url: Optional[str] = None


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./enrollments.db"
    echo: bool = False


class ReferenceSettings(BaseModel):
    # 支付引用串中用户ID的固定前缀（身份提供方的ID格式）
    user_id_marker: str = "user_"
    max_length: int = 100


class WebhookProcessingSettings(BaseModel):
    # webhook 处理中每次外部调用（数据库/日历）的超时上限
    store_timeout_seconds: float = 5.0


class CalendarSettings(BaseModel):
    calendar_id: Optional[str] = None
    credentials_file: Optional[str] = None
    timeout_seconds: float = 5.0
    # 在没有显式价格时大师课的默认货币
    default_currency: str = "KES"
    # 即将开始的大师课列表：按关键字筛选日历事件，向后查看的天数与条数上限
    listing_query: Optional[str] = "masterclass"
    listing_horizon_days: int = 90
    listing_max_results: int = 50

    @property
    def enabled(self) -> bool:
        return bool(self.calendar_id and self.credentials_file)


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Masterclass Enrollment Service")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=True)
    ENVIRONMENT: str = Field(default="development")

    # 前端站点地址，用于拼接支付完成后的回跳地址
    APP_BASE_URL: str = Field(default="http://localhost:3000")

    # 分组配置：嵌套模型
    redis: RedisSettings = Field(default_factory=RedisSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    reference: ReferenceSettings = Field(default_factory=ReferenceSettings)
    webhook: WebhookProcessingSettings = Field(default_factory=WebhookProcessingSettings)
    calendar: CalendarSettings = Field(default_factory=CalendarSettings)

    # 安全配置（校验身份提供方签发的访问令牌）
    SECRET_KEY: Optional[str] = Field(
        default=None,
        description="JWT签名密钥，生产环境必须设置"
    )
    ALGORITHM: str = Field(default="HS256")

    # CORS配置
    CORS_ORIGINS: list = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
    )

    # 日志/请求体记录配置
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @model_validator(mode="after")
    def _validate_secret_key(self):
        # 所有环境均要求显式配置 SECRET_KEY，避免重启后令牌校验失败
        if not self.SECRET_KEY:
            raise ValueError(
                "SECRET_KEY 未配置。请在环境变量或 .env 中设置 SECRET_KEY"
            )
        return self

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许 JSON 字符串或逗号分隔字符串两种格式。"""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
