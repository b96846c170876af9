"""Preset provider catalogue.

Presets are immutable at runtime; user-added providers are registered after
them, so on a model id collision a preset always wins.
"""

from __future__ import annotations

from imagine_gateway.gateway.types import AuthType, Model, ModelType, Provider, ProviderFamily

_GEMINI_IMAGE_RATIOS = ("2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9", "1:1")

PRESET_PROVIDERS: tuple[Provider, ...] = (
    Provider(
        id="pockgo-image",
        name="Pockgo Image",
        name_zh="Pockgo 图像生成",
        base_url="https://newapi.pockgo.com/v1",
        requires_auth=True,
        auth_type=AuthType.BEARER,
        family=ProviderFamily.OPENAI,
        description="Primary image generation provider",
        models=[
            Model("seedream-4.0", ModelType.IMAGE, "SeedREAM 4.0", "即梦 4.0", cost_per_unit=0.01),
            Model("seedream-4.0-2k", ModelType.IMAGE, "SeedREAM 4.0 2K", "即梦 4.0 高清2K", cost_per_unit=0.02),
            Model("seedream-4.0-4k", ModelType.IMAGE, "SeedREAM 4.0 4K", "即梦 4.0 超清4K", cost_per_unit=0.04),
            Model(
                "gemini-2.5-flash-image",
                ModelType.IMAGE,
                "Gemini 2.5 Flash Image",
                "Gemini 2.5 Flash 图像",
                supported_ratios=_GEMINI_IMAGE_RATIOS,
                cost_per_unit=0.015,
            ),
            Model(
                "gemini-3-pro-image-preview",
                ModelType.IMAGE,
                "Gemini 3 Pro Image Preview",
                "Gemini 3 Pro 图像预览",
                supported_ratios=_GEMINI_IMAGE_RATIOS,
                cost_per_unit=0.02,
            ),
            Model(
                "gemini-3-pro-image-preview-2k",
                ModelType.IMAGE,
                "Gemini 3 Pro Image Preview 2K",
                "Gemini 3 Pro 图像预览 2K",
                supported_ratios=_GEMINI_IMAGE_RATIOS,
                cost_per_unit=0.03,
            ),
            Model(
                "gemini-3-pro-image-preview-4k",
                ModelType.IMAGE,
                "Gemini 3 Pro Image Preview 4K",
                "Gemini 3 Pro 图像预览 4K",
                supported_ratios=_GEMINI_IMAGE_RATIOS,
                cost_per_unit=0.05,
            ),
            Model("qwen-image", ModelType.IMAGE, "Qwen Image Edit", "通义千问图像", cost_per_unit=0.012),
            Model("gemini-2.5-pro", ModelType.CHAT, "Gemini 2.5 Pro", "Gemini 2.5 Pro", cost_per_unit=0.075),
            Model("gemini-2.5-flash", ModelType.CHAT, "Gemini 2.5 Flash", "Gemini 2.5 Flash", cost_per_unit=0.015),
        ],
    ),
    Provider(
        id="openrouter",
        name="OpenRouter",
        name_zh="OpenRouter",
        base_url="https://openrouter.ai/api/v1",
        requires_auth=True,
        auth_type=AuthType.BEARER,
        family=ProviderFamily.OPENAI,
        description="Access to multiple LLM providers",
        models=[
            Model(
                "deepseek/deepseek-chat-v3.1:free",
                ModelType.CHAT,
                "DeepSeek Chat v3.1 (Free)",
                "DeepSeek 聊天 v3.1（免费）",
                max_tokens=65536,
            ),
            Model("google/gemini-2.5-pro-preview", ModelType.CHAT, "Gemini 2.5 Pro Preview", cost_per_unit=0.05),
            Model("anthropic/claude-sonnet-4", ModelType.CHAT, "Claude Sonnet 4", cost_per_unit=0.03),
        ],
    ),
    Provider(
        id="modelscope",
        name="ModelScope",
        name_zh="魔搭社区",
        base_url="https://api-inference.modelscope.cn/v1",
        requires_auth=True,
        auth_type=AuthType.BEARER,
        family=ProviderFamily.OPENAI,
        description="AI assistant chat models",
        models=[
            Model("Qwen/Qwen2.5-72B-Instruct", ModelType.CHAT, "Qwen 2.5 72B Instruct", max_tokens=128000),
            Model("qwen/Qwen2.5-72B-Instruct", ModelType.CHAT, "Qwen 2.5 72B (lowercase)", max_tokens=128000),
            Model("deepseek-ai/DeepSeek-V3.1", ModelType.CHAT, "DeepSeek V3.1", max_tokens=128000),
        ],
    ),
    Provider(
        id="google-official",
        name="Google Gemini Official",
        name_zh="Google Gemini 官方",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        requires_auth=True,
        auth_type=AuthType.QUERY,
        family=ProviderFamily.GOOGLE,
        description="Official Google Gemini API",
        models=[
            Model("models/gemini-2.5-pro", ModelType.CHAT, "Gemini 2.5 Pro", cost_per_unit=0.075),
            Model("models/gemini-2.5-flash", ModelType.CHAT, "Gemini 2.5 Flash", cost_per_unit=0.015),
            Model("models/gemini-2.5-flash-image", ModelType.IMAGE, "Gemini 2.5 Flash Image", cost_per_unit=0.02),
            Model("models/imagen-3.0-generate-002", ModelType.IMAGE, "Imagen 3.0", cost_per_unit=0.04),
            Model("models/imagen-4.0-fast-generate-001", ModelType.IMAGE, "Imagen 4.0 Fast", cost_per_unit=0.03),
            Model("models/imagen-4.0-ultra-generate-001", ModelType.IMAGE, "Imagen 4.0 Ultra", cost_per_unit=0.08),
            Model("models/imagen-4.0-generate-001", ModelType.IMAGE, "Imagen 4.0", cost_per_unit=0.05),
        ],
    ),
)

# provider id -> Settings attribute holding its environment default key
PROVIDER_ENV_KEYS: dict[str, str] = {
    "pockgo-image": "pockgo_api_key",
    "modelscope": "modelscope_api_key",
    "google-official": "google_gemini_api_key",
    "openrouter": "openrouter_api_key",
}

DEFAULT_IMAGE_MODEL = "seedream-4.0"
DEFAULT_CHAT_MODEL = "deepseek/deepseek-chat-v3.1:free"
