# pipeline.py
import json
import logging
import os

from sqlalchemy.exc import SQLAlchemyError

from config import load_settings, load_yaml
from ingest.answer_parser import parse_answer
from ingest.dify_client import DifyClient, RecognitionError, UnsupportedFileType
from normalize.transformer import InvalidInputShape, normalize

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS = (".jpg", ".jpeg", ".png", ".pdf")


class FileConnector:
    """
    Inbound documents: a single file or every scan in a directory.
    .json files are treated as already-recognized OCR output.
    """

    def __init__(self, cfg):
        self.path = cfg["settings"]["path"]

    def read(self):
        if os.path.isdir(self.path):
            names = sorted(os.listdir(self.path))
            paths = [os.path.join(self.path, n) for n in names
                     if n.lower().endswith(DOCUMENT_EXTENSIONS + (".json",))]
        elif os.path.exists(self.path):
            paths = [self.path]
        else:
            raise ValueError(f"Inbound path does not exist: {self.path}")

        documents = []
        for path in paths:
            with open(path, "rb") as f:
                documents.append((os.path.basename(path), f.read()))
        return documents


class Recognizer:
    def __init__(self, documents, client):
        self.documents = documents
        self.client = client

    def run(self):
        extracted, failures = [], []
        for filename, content in self.documents:
            try:
                if filename.lower().endswith(".json"):
                    extraction = json.loads(content.decode("utf-8"))
                else:
                    extraction = parse_answer(self.client.recognize(filename, content))
                extracted.append((filename, extraction))
            except (RecognitionError, UnsupportedFileType, ValueError) as e:
                logger.error(f"Failed to recognize {filename}: {e}")
                failures.append({"filename": filename, "error": str(e)})
                continue
        return extracted, failures


class Normalizer:
    def __init__(self, extracted):
        self.extracted = extracted

    def run(self):
        normalized, failures = [], []
        for filename, extraction in self.extracted:
            try:
                normalized.append((filename, normalize(extraction)))
            except InvalidInputShape as e:
                logger.error(f"Failed to normalize {filename}: {e}")
                failures.append({"filename": filename, "error": str(e)})
                continue
        return normalized, failures


class RecordWriter:
    def __init__(self, normalized, created_by=None):
        self.normalized = normalized
        self.created_by = created_by

    def run(self):
        from db import init_db
        from records import save_record

        init_db()
        ids, failures = [], []
        for filename, form in self.normalized:
            try:
                record = save_record(form, created_by=self.created_by)
            except SQLAlchemyError as e:
                logger.error(f"Failed to save {filename}: {e}")
                failures.append({"filename": filename, "error": str(e)})
                continue
            logger.info(f"{filename} -> record {record.id}")
            ids.append(record.id)
        return ids, failures


def write_output(path, normalized):
    payload = [{"filename": filename, "record": form.model_dump()} for filename, form in normalized]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    logger.info(f"Wrote {len(payload)} normalized records to {path}")


def stage_enabled(cfg, name):
    for stage in cfg.get("stages", []):
        if isinstance(stage, dict) and name in stage:
            return bool(stage[name])
    return False


def run_pipeline(config_path: str, client=None):
    """
    Batch intake run driven by a YAML file, e.g.

        connectors:
          inbound:
            - settings: {path: scans/}
        stages:
          - persist: true
        output: normalized.json
    """
    logger.info(f"Loading pipeline config from {config_path}")
    cfg = load_yaml(config_path)

    # Ingest
    file_cfg = cfg["connectors"]["inbound"][0]
    documents = FileConnector(file_cfg).read()
    logger.info(f"Ingested {len(documents)} documents")

    if client is None:
        client = DifyClient.from_settings(load_settings().dify)

    # Stages
    extracted, recognition_failures = Recognizer(documents, client).run()
    normalized, normalize_failures = Normalizer(extracted).run()
    failures = recognition_failures + normalize_failures

    record_ids = []
    if stage_enabled(cfg, "persist"):
        record_ids, save_failures = RecordWriter(normalized, cfg.get("created_by")).run()
        failures += save_failures

    if cfg.get("output"):
        write_output(cfg["output"], normalized)

    summary = {
        "total": len(documents),
        "succeeded": len(documents) - len(failures),
        "failed": len(failures),
        "failures": failures,
        "record_ids": record_ids,
    }
    logger.info(f"Pipeline run complete: {summary['succeeded']}/{summary['total']} processed")
    return summary
