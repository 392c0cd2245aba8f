# main.py
"""
XSD field mapping pipeline - source fields -> flattened XSD paths -> report
"""
from extractors.tabular_ingestor import read_source
from extractors.xsd_flattener import build_target_dictionary
from mapper.mapping_assembler import assemble, collect_oracle_results, sample_values
from mapper.openai_mapper import OpenAIFieldMapper
from utils.config import MapperSettings
from utils.color_scale import is_low_confidence
from utils.cost_estimator import PayloadEstimator
from utils.decorators import log_execution_time
from utils.exceptions import MappingError
from utils.logging_config import setup_logging
from utils.report_renderer import PREVIEW_ROWS, ReportArtifact, package_report
from utils.validators import DataValidator, OUTPUT_FORMATS
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
import argparse
import logging
import math
import sys
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class MappingRunResult:
    artifact: ReportArtifact
    by_source: list
    by_score: list
    dictionary: list
    issues: List[Dict] = field(default_factory=list)
    batches: int = 0

    @property
    def low_confidence(self) -> int:
        return sum(1 for row in self.by_source if is_low_confidence(row.match_score))


class FieldMappingPipeline:
    def __init__(self, oracle=None, settings: Optional[MapperSettings] = None):
        self.settings = settings or MapperSettings.from_env()
        self._oracle = oracle

    @property
    def oracle(self):
        # Built on first use so input validation runs before credential checks
        if self._oracle is None:
            estimator = None
            if self.settings.estimate_tokens:
                model = self.settings.azure_deployment if self.settings.uses_azure else self.settings.openai_model
                estimator = PayloadEstimator(model)
            self._oracle = OpenAIFieldMapper(self.settings, estimator=estimator)
        return self._oracle

    @log_execution_time
    def run(self, schema_files: Sequence[Tuple[str, bytes]], source_file: Optional[Tuple[str, bytes]],
            output_format: str = 'both', project_name: Optional[str] = None) -> MappingRunResult:
        """
        Execute a full mapping run

        Args:
            schema_files: (file name, content) for each XSD
            source_file: (file name, content) of the CSV / Excel source
            output_format: xlsx | html | both
            project_name: Base name of the produced artifact

        Raises:
            MappingError subclasses; nothing is produced when a stage fails
        """
        fmt = DataValidator.validate_output_format(output_format)
        DataValidator.validate_inputs(schema_files, source_file)

        # Step 1: Ingest source
        source_name, source_bytes = source_file
        logger.info(f"📊 Reading source {source_name}...")
        table = read_source(source_bytes, source_name)

        # Step 2: Flatten schemas
        logger.info(f"🗂️ Flattening {len(schema_files)} XSD file(s)...")
        dictionary = build_target_dictionary(schema_files, skip_invalid=self.settings.skip_invalid_schemas)
        if not dictionary:
            logger.warning("Target dictionary is empty, every field will score low")
        logger.info(f"✅ Target dictionary has {len(dictionary)} paths")

        # Step 3: Score fields in batches
        samples = sample_values(table.records, table.fields)
        results = []
        batches = 0
        if table.fields:
            logger.info(f"🤖 Scoring {len(table.fields)} fields...")
            batch_size = self.settings.batch_size
            batches = math.ceil(len(table.fields) / batch_size)
            results = collect_oracle_results(self.oracle, table.fields, dictionary, samples, batch_size)
        else:
            logger.warning(f"No fields found in {source_name}, skipping oracle")

        # Step 4: Assemble tables
        by_source, by_score = assemble(table.fields, results, dictionary, samples)
        issues = DataValidator.validate_mapping_predictions(by_source)

        # Step 5: Render
        logger.info("💾 Rendering report...")
        artifact = package_report(by_source, by_score, dictionary, table.preview(PREVIEW_ROWS),
                                  output_format=fmt, project_name=project_name)

        result = MappingRunResult(artifact=artifact, by_source=by_source, by_score=by_score,
                                  dictionary=dictionary, issues=issues, batches=batches)
        logger.info(
            f"✅ Mapped {len(by_source)} fields against {len(dictionary)} paths in {batches} batch(es); "
            f"{result.low_confidence} below threshold -> {artifact.filename}"
        )
        return result


def _read_files(paths: Sequence[str]) -> List[Tuple[str, bytes]]:
    return [(Path(p).name, Path(p).read_bytes()) for p in paths]


def print_summary(result: MappingRunResult, output_file: Path):
    scores = [row.match_score for row in result.by_source]
    print("\n" + "="*80)
    print("FIELD MAPPING SUMMARY")
    print("="*80)
    print(f"Source fields: {len(result.by_source)}")
    print(f"Target paths: {len(result.dictionary)}")
    if scores:
        print(f"Average confidence: {sum(scores) / len(scores):.1%}")
        print(f"High confidence (≥80%): {sum(1 for s in scores if s >= 0.8)}")
        print(f"Low confidence (<60%): {sum(1 for s in scores if s < 0.6)}")
    print(f"\nOutput file: {output_file}")
    print("="*80 + "\n")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Map source fields to XSD target paths")
    parser.add_argument('--xsd', nargs='+', required=True, help="One or more XSD files")
    parser.add_argument('--source', required=True, help="CSV / XLSX / XLS source file")
    parser.add_argument('--format', dest='output_format', default='both', choices=OUTPUT_FORMATS)
    parser.add_argument('--project', dest='project_name', default=None, help="Base name of the output file")
    parser.add_argument('--out-dir', default='output', help="Directory for the produced artifact")
    args = parser.parse_args(argv)

    load_dotenv()
    settings = MapperSettings.from_env()
    setup_logging(log_level=settings.log_level, log_file=settings.log_file)

    try:
        pipeline = FieldMappingPipeline(settings=settings)
        result = pipeline.run(
            _read_files(args.xsd),
            _read_files([args.source])[0],
            output_format=args.output_format,
            project_name=args.project_name,
        )
    except (MappingError, OSError) as e:
        logger.error(f"Mapping failed: {str(e)}")
        print(f"❌ {str(e)}", file=sys.stderr)
        return 1

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    output_file = out_dir / result.artifact.filename
    output_file.write_bytes(result.artifact.content)
    logger.info(f"📁 Saved {output_file}")
    print_summary(result, output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
