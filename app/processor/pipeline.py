from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from app.analysis.models import AnalysisResult
from app.database.models import ReceiptRecord
from app.matching.models import ProductMatchResult
from app.ocr.models import DocumentType, OcrProcessingResult


@dataclass(slots=True)
class PipelineContext:
    receipt_id: str
    job_id: str
    document_type: DocumentType
    storage_key: str
    user_id: str = ""
    deadline: datetime | None = None
    final_attempt: bool = False
    receipt: ReceiptRecord | None = None
    raw_bytes: bytes = b""
    ocr_result: OcrProcessingResult | None = None
    analysis: AnalysisResult | None = None
    match_results: list[ProductMatchResult] = field(default_factory=list)
    error_message: str = ""


class PipelineStep(ABC):
    # job progress reported before the step runs; None leaves it unchanged
    progress: int | None = None
    # job progress reported once the step has succeeded
    progress_after: int | None = None

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
