"""
Pydantic schemas for translation API.

Wire format is camelCase; Python attributes are snake_case.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TargetLanguage(ApiModel):
    """Target language as sent by the client."""
    code: Optional[str] = Field(None, description="Language code (e.g. 'es')")
    name: Optional[str] = Field(None, description="Display name (e.g. 'Spanish')")
    flag: Optional[str] = Field(None, description="Flag emoji (ignored)")


class TranslationJob(ApiModel):
    """
    Request for config file translation.

    Fields are optional at the schema level; presence is enforced by the
    orchestrator so that missing fields produce a validation_error response.
    """
    content: Optional[str] = Field(None, description="File content to translate")
    target_language: Optional[TargetLanguage] = Field(None, alias="targetLanguage", description="Target language")
    file_name: Optional[str] = Field(None, alias="fileName", description="Original file name (used for syntax hints)")


class TranslationStats(ApiModel):
    """Statistics of a completed translation."""
    original_lines: int = Field(..., alias="originalLines")
    translated_lines: int = Field(..., alias="translatedLines")
    character_count: int = Field(..., alias="characterCount", description="Characters in the translated output")
    estimated_token_count: int = Field(..., alias="estimatedTokenCount", description="ceil(characterCount / 4)")
    elapsed_ms: int = Field(..., alias="elapsedMs")


class ChunkResult(ApiModel):
    """Result of translating one chunk."""
    index: int
    translated_text: str = Field(..., alias="translatedText")
    attempts: int = Field(..., ge=1)


class RateLimitStatus(ApiModel):
    """Caller's rate-limit status."""
    limit: int
    remaining: int
    reset_time: int = Field(..., alias="resetTime", description="Epoch milliseconds")
    allowed: bool


class TranslationOutcome(ApiModel):
    """Result of translating a whole document."""
    translated_content: str = Field(..., alias="translatedContent")
    stats: TranslationStats
    chunk_results: List[ChunkResult] = Field(default_factory=list, alias="chunkResults")
    rate_limit: Optional[RateLimitStatus] = Field(None, alias="rateLimit")

    @property
    def chunked(self) -> bool:
        return len(self.chunk_results) > 1


class TranslateResponse(ApiModel):
    """Response from /translate."""
    translated_content: str = Field(..., alias="translatedContent")
    success: bool = True
    total_translations: Optional[int] = Field(None, alias="totalTranslations")
    stats: TranslationStats
    chunks: int = Field(1, description="Number of chunks the document was split into")


class LanguageCount(ApiModel):
    language: str
    count: int


class UsageStatus(ApiModel):
    """Aggregate usage counter and analytics."""
    total_translations: int = Field(..., alias="totalTranslations")
    last_updated: str = Field(..., alias="lastUpdated")
    translations_today: int = Field(0, alias="translationsToday", description="Entries created today (UTC)")
    top_languages: List[LanguageCount] = Field(default_factory=list, alias="topLanguages")
    success_rate: float = Field(100.0, alias="successRate", description="Percent successful over the look-back window")


class StatusResponse(ApiModel):
    """Response from /translate/status."""
    rate_limit: RateLimitStatus = Field(..., alias="rateLimit")
    usage: UsageStatus


class LanguageItem(ApiModel):
    code: str
    name: str
    flag: str
