from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

from metaflow import FlowSpec, Parameter, step

from resume_intake.config import load_settings
from resume_intake.pipelines.extraction_pipeline import ExtractionPipeline
from resume_intake.schemas.pipeline_result import PipelineResult

RESUME_SUFFIXES = (".pdf", ".txt")


def _discover_top_level_resumes(input_root: Path) -> list[Path]:
    return sorted(
        path
        for path in input_root.iterdir()
        if path.is_file() and path.suffix.lower() in RESUME_SUFFIXES
    )


def _make_output_filename(source: Path) -> str:
    return f"{source.stem}_result.json"


def _persist_pipeline_result(result: PipelineResult, output_dir: Path, source: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / _make_output_filename(source)
    with output_path.open("w", encoding="utf-8") as file_obj:
        json.dump(result.to_json_dict(), file_obj, indent=2, ensure_ascii=False)
        file_obj.write("\n")
    return output_path


def _process_resume_file(
    pipeline: ExtractionPipeline,
    source: Path,
    language: str,
    validation_mode: str | None,
) -> PipelineResult:
    if source.suffix.lower() == ".pdf":
        return pipeline.process_pdf(
            source.read_bytes(),
            filename=source.name,
            language=language,
            validation_mode=validation_mode,
        )
    return pipeline.process_text(
        source.read_text(encoding="utf-8"),
        language=language,
        validation_mode=validation_mode,
    )


def _summarize_results(results: list[dict[str, Any]]) -> tuple[int, int, list[dict[str, Any]]]:
    failed_results = [result for result in results if not result.get("success", False)]
    success_count = len(results) - len(failed_results)
    failure_count = len(failed_results)
    return success_count, failure_count, failed_results


class ResumeExtractionBatchFlow(FlowSpec):
    input_dir = Parameter("input-dir", type=str, help="Folder with resume PDFs or .txt files.")
    output_dir = Parameter("output-dir", type=str, default="outputs")
    language = Parameter("language", type=str, default="en")
    validation_mode = Parameter("validation-mode", type=str, default="")

    @step
    def start(self):
        input_root = Path(self.input_dir).expanduser().resolve()
        if not input_root.exists():
            raise FileNotFoundError(f"Input directory not found: {input_root}")
        if not input_root.is_dir():
            raise NotADirectoryError(f"Input path is not a directory: {input_root}")

        self.output_root = Path(self.output_dir).expanduser().resolve()
        self.output_root.mkdir(parents=True, exist_ok=True)

        resume_paths = _discover_top_level_resumes(input_root)
        if not resume_paths:
            raise FileNotFoundError(f"No resume files found in: {input_root}")

        self.resume_paths = [str(path) for path in resume_paths]
        self.next(self.process_resume, foreach="resume_paths")

    @step
    def process_resume(self):
        source = Path(self.input).expanduser().resolve()
        self.result = {
            "source": str(source),
            "output_path": None,
            "success": False,
            "error_message": None,
        }

        try:
            pipeline = ExtractionPipeline.from_settings(load_settings())
            pipeline_result = _process_resume_file(
                pipeline,
                source,
                language=self.language,
                validation_mode=self.validation_mode or None,
            )
            output_path = _persist_pipeline_result(
                result=pipeline_result,
                output_dir=self.output_root,
                source=source,
            )
            self.result["output_path"] = str(output_path)
            self.result["success"] = pipeline_result.success
            if pipeline_result.errors:
                self.result["error_message"] = " | ".join(pipeline_result.errors)
        except Exception as exc:  # noqa: BLE001
            self.result["error_message"] = f"{type(exc).__name__}: {exc}"

        self.next(self.join)

    @step
    def join(self, inputs):
        self.results = [input_obj.result for input_obj in inputs]
        (
            self.success_count,
            self.failure_count,
            self.failed_results,
        ) = _summarize_results(self.results)
        self.generated_on = date.today().isoformat()
        self.next(self.end)

    @step
    def end(self):
        print(f"Batch run completed on: {self.generated_on}")
        print(f"Total resumes processed: {len(self.results)}")
        print(f"Successful resumes: {self.success_count}")
        print(f"Failures: {self.failure_count}")
        if self.failed_results:
            print("Failed files:")
            for failed in self.failed_results:
                print(f"- {failed['source']}: {failed['error_message']}")


def main():
    ResumeExtractionBatchFlow()


if __name__ == "__main__":
    main()
