from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class InputKind(str, Enum):
    URL = "url"
    TEXT = "text"


class Verdict(str, Enum):
    REAL = "Real"
    FAKE = "Fake"
    INCONCLUSIVE = "Inconclusive"


class MediaVerdict(str, Enum):
    LIKELY_REAL = "Likely Real"
    UNCERTAIN = "Uncertain"
    LIKELY_FAKE = "Likely Fake"


class Confidence(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# --- Request bodies ---
# Fields stay optional so missing values reach the services and come back
# as a 400 with a readable message.

class RegisterIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AnalyzeIn(BaseModel):
    url: Optional[str] = None
    text: Optional[str] = None


class DeepfakeIn(BaseModel):
    media: Optional[str] = None      # base64, no data: prefix
    mediaType: Optional[str] = None
    fileName: Optional[str] = None
    isVideo: bool = False


class SummarizeIn(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None


# --- Service results ---

class PublicUser(BaseModel):
    id: str
    name: str
    email: str


class AuthResult(BaseModel):
    token: str
    user: PublicUser


class TextVerdict(BaseModel):
    score: int               # 0..100
    verdict: Verdict
    reasoning: str
    degraded: bool = False   # True when a fallback replaced the provider answer


class VisionVerdict(BaseModel):
    score: int
    verdict: MediaVerdict
    confidence: Confidence
    analysis: str


class AnalysisResult(BaseModel):
    score: int
    verdict: Verdict
    reasoning: str
    analyzed_at: datetime
    input_kind: InputKind
    degraded: bool = False

    def public(self) -> dict:
        return {
            "score": self.score,
            "verdict": self.verdict.value,
            "reasoning": self.reasoning,
            "analyzedAt": self.analyzed_at.isoformat(),
        }


class MediaResult(BaseModel):
    score: int
    verdict: MediaVerdict
    confidence: Confidence
    analysis: str
    analyzed_at: datetime

    def public(self) -> dict:
        return {
            "score": self.score,
            "verdict": self.verdict.value,
            "confidence": self.confidence.value,
            "analysis": self.analysis,
            "analyzedAt": self.analyzed_at.isoformat(),
        }


class TrustAnnotation(BaseModel):
    score: int               # 0..99
    tier: str                # VERIFIED | MODERATE | CAUTION
