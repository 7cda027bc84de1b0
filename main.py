# main.py
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import fire
import uvicorn
from fastapi import Body, Depends, FastAPI, File, HTTPException, UploadFile

import db
import records
from config import load_settings
from ingest.answer_parser import parse_answer
from ingest.dify_client import DifyClient, RecognitionError, UnsupportedFileType
from intake import IntakePipeline
from normalize.schema import FormRecord
from normalize.transformer import InvalidInputShape, normalize_result
from pipeline import run_pipeline

settings = load_settings()

# Configure logger
logging.basicConfig(level=settings.logging.level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize database
    db.init_db()
    yield


# Initialize FastAPI app
app = FastAPI(title="medintake", lifespan=lifespan)


def get_intake() -> IntakePipeline:
    return IntakePipeline(DifyClient.from_settings(settings.dify))


@app.get("/")
def read_root():
    return {"medintake": "Intake service is live. POST a scan to /recognize."}


@app.post("/recognize")
def recognize_image(image: Optional[UploadFile] = File(None),
                    intake: IntakePipeline = Depends(get_intake)):
    if image is None:
        raise HTTPException(status_code=400, detail="No image file found in the request")

    content = image.file.read()
    try:
        return intake.process_document(image.filename, content, image.content_type)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RecognitionError as e:
        logger.error(f"Image recognition error: {e}")
        raise HTTPException(status_code=502, detail="Image recognition failed")


@app.post("/recognize/batch")
def recognize_batch(images: List[UploadFile] = File(...),
                    intake: IntakePipeline = Depends(get_intake)):
    documents = [(image.filename, image.file.read(), image.content_type) for image in images]
    return intake.process_batch(documents)


@app.post("/normalize")
def normalize_extraction(raw: Any = Body(...)):
    try:
        return normalize_result(raw)
    except InvalidInputShape as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/records", status_code=201)
def create_record(form: FormRecord):
    return records.save_record(form).model_dump()


@app.get("/records")
def list_records(search: str = "", offset: int = 0, limit: int = 50):
    return [records.summarize(r) for r in records.list_records(search, offset, limit)]


@app.get("/records/{record_id}")
def read_record(record_id: str):
    try:
        return records.get_record(record_id).model_dump()
    except records.RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/records/{record_id}/form")
def read_record_form(record_id: str):
    try:
        return records.get_record_form(record_id).model_dump()
    except records.RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.put("/records/{record_id}")
def update_record(record_id: str, form: FormRecord):
    try:
        return records.update_record(record_id, form).model_dump()
    except records.RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.delete("/records/{record_id}", status_code=204)
def delete_record(record_id: str):
    try:
        records.delete_record(record_id)
    except records.RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/run-pipeline")
def trigger_pipeline(config_path: Optional[str] = None) -> Dict[str, Any]:
    config_path = config_path or settings.server.pipeline_config
    logger.info(f"Triggering pipeline with config: {config_path}")
    try:
        summary = run_pipeline(config_path)
    except (OSError, KeyError, ValueError) as e:
        logger.error(f"Pipeline run failed: {e}")
        raise HTTPException(status_code=400, detail=f"Pipeline run failed: {e}")
    return {"status": "Pipeline execution completed.", **summary}


def normalize_file(path: str):
    """Normalize an OCR JSON file and print the form record"""
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    print(json.dumps(normalize_result(raw), ensure_ascii=False, indent=2))


def recognize_file(path: str):
    """Recognize one scan with the configured service and print the form record"""
    answer = get_intake().recognizer.recognize_path(path)
    print(json.dumps(normalize_result(parse_answer(answer)), ensure_ascii=False, indent=2))


def serve(host: Optional[str] = None, port: Optional[int] = None):
    uvicorn.run(app, host=host or settings.server.host, port=port or settings.server.port)


# CLI entrypoint using python-fire
def cli():
    fire.Fire({
        "run_pipeline": run_pipeline,
        "normalize_file": normalize_file,
        "recognize": recognize_file,
        "serve": serve,
    })


# Entry point for CLI or server
if __name__ == "__main__":
    serve()
