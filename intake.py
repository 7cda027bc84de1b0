# intake.py
import logging
from typing import Dict, List, Sequence

from ingest.answer_parser import parse_answer
from ingest.dify_client import DifyClient, RecognitionError, UnsupportedFileType
from normalize.transformer import normalize

logger = logging.getLogger(__name__)


class IntakePipeline:
    """
    Scanned record -> recognition answer -> OCR JSON -> normalized form
    The recognizer only needs a recognize(filename, content, content_type) method
    """

    def __init__(self, recognizer: DifyClient):
        self.recognizer = recognizer

    def process_document(self, filename: str, content: bytes, content_type: str = None) -> Dict:
        logger.info(f"Processing {filename} ({len(content)} bytes)")

        answer = self.recognizer.recognize(filename, content, content_type)
        extraction = parse_answer(answer)
        record = normalize(extraction)

        return {
            "success": True,
            "recognitionData": record.model_dump(),
        }

    def process_batch(self, documents: List[Sequence]) -> Dict:
        """
        Recognize several documents; one failure does not stop the rest
        Each document is (filename, content) or (filename, content, content_type)
        """
        results = []
        errors = []

        for filename, content, *declared in documents:
            content_type = declared[0] if declared else None
            try:
                result = self.process_document(filename, content, content_type)
                results.append({"filename": filename, **result})
            except (RecognitionError, UnsupportedFileType, ValueError) as e:
                logger.error(f"Failed to process {filename}: {e}")
                errors.append({"filename": filename, "error": str(e)})
                continue

        logger.info(f"Batch complete: {len(results)} succeeded, {len(errors)} failed")
        return {
            "total": len(documents),
            "succeeded": len(results),
            "failed": len(errors),
            "results": results,
            "errors": errors,
        }
