"""External pipeline dispatch for completed granules.

Runs the metadata gate on the trigger file, then the detection and fitting
binaries in sequence. The binaries are opaque: they are driven by argv and
judged by exit status only.
"""

import logging
import os
import subprocess
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Callable, List, Optional, TYPE_CHECKING

from granule_watch.errors import GateCheckFailed, StageFailed
from granule_watch.granule.accumulator import GranuleSnapshot

if TYPE_CHECKING:
    from granule_watch.schemas import InternalConfig

__all__ = ['DispatchOutcome', 'Dispatcher', 'gate_attribute_values', 'product_filename']

logger = logging.getLogger(__name__)


class DispatchOutcome(str, Enum):
    """Result of dispatching one granule.

    PROCESSED: both stages ran and exited cleanly
    SKIPPED: the gate found the data does not qualify (not an error)
    """
    PROCESSED = "processed"
    SKIPPED = "skipped"


def product_filename(tag: str, granule_id: str, version: str) -> str:
    """``<TAG>_<granuleId>_<version>.csv``"""
    return f"{tag}_{granule_id}_{version}.csv"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].rsplit(":", 1)[-1]


def gate_attribute_values(xml_text: str, attribute: str) -> List[str]:
    """Values of every attribute whose name contains ``attribute`` in an h5dump XML dump.

    Raises
    ------
    xml.etree.ElementTree.ParseError
        If the dump is not well-formed XML.
    """
    root = ET.fromstring(xml_text)
    values = []
    for node in root.iter():
        if _local_name(node.tag) != "Attribute" or attribute not in node.get("Name", ""):
            continue
        for child in node.iter():
            if _local_name(child.tag) == "DataFromFile":
                values.extend((child.text or "").split())
    return values


class Dispatcher:
    """Runs the gate check and the two-stage pipeline for a completed granule.

    **Gate:** ``<metadata_binary> -x -A <trigger>`` dumps the trigger file's
    attributes as XML. The granule is disqualified when the configured
    attribute is present and every value equals ``gate.disqualify_value``
    (for VIIRS: an ascending-only, i.e. daytime-only, granule). If the tool
    cannot be run or its output cannot be read, processing proceeds, so
    tooling trouble never silently drops a granule.

    **Stage 1 (detect):** ``<detect_binary> <trigger> -output <VNFD csv> -cloud 0``

    **Stage 2 (fit):** ``<fit_binary> <VNFD csv> -output <VNFL csv> -plot 1 ...``

    Outputs are named ``<TAG>_<granuleId>_<version>.csv`` under
    ``output_dir``; a re-run of the same granule overwrites them.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration.
    runner : callable, optional
        ``subprocess.run``-compatible function (for testing).
    """

    def __init__(self, config: "InternalConfig", runner: Optional[Callable] = None):
        self.config = config
        self.output_dir = config.output_dir
        self._run = runner or subprocess.run

    def output_path(self, tag: str, granule_id: str) -> str:
        return os.path.join(
            self.output_dir,
            product_filename(tag, granule_id, self.config.products.version),
        )

    def process(self, record: GranuleSnapshot) -> DispatchOutcome:
        """Dispatch one completed granule.

        Returns
        -------
        DispatchOutcome
            PROCESSED, or SKIPPED if the gate disqualified the granule.

        Raises
        ------
        StageFailed
            If a stage failed to launch or exited non-zero. Stage 2 is never
            attempted after a stage 1 failure.
        """
        trigger = record.trigger_file_path
        if not trigger:
            raise StageFailed("detect", record.id, output="granule has no trigger file")

        if self.config.gate.enabled and not self.qualifies(trigger):
            logger.info("Granule %s does not qualify (%s), skipping",
                        record.id, self.config.gate.attribute)
            return DispatchOutcome.SKIPPED

        products = self.config.products
        detect_out = self.output_path(products.detect_tag, record.id)
        fit_out = self.output_path(products.fit_tag, record.id)

        self._run_stage(
            "detect", record.id,
            [self.config.detect_binary, trigger, "-output", detect_out, *products.detect_args],
        )
        self._run_stage(
            "fit", record.id,
            [self.config.fit_binary, detect_out, "-output", fit_out, *products.fit_args],
        )

        logger.info("✓ Processed granule %s -> %s, %s", record.id,
                    os.path.basename(detect_out), os.path.basename(fit_out))
        return DispatchOutcome.PROCESSED

    def qualifies(self, trigger: str) -> bool:
        """Gate check. True unless the metadata positively disqualifies the file."""
        try:
            xml_text = self._inspect(trigger)
            values = gate_attribute_values(xml_text, self.config.gate.attribute)
        except GateCheckFailed as e:
            logger.warning("Gate check failed, processing anyway: %s", e)
            return True
        except ET.ParseError as e:
            logger.warning("Gate check output unreadable for %s, processing anyway: %s", trigger, e)
            return True

        if not values:
            logger.debug("No %s attribute in %s", self.config.gate.attribute, trigger)
            return True
        return not all(v == self.config.gate.disqualify_value for v in values)

    def _inspect(self, trigger: str) -> str:
        argv = [self.config.metadata_binary, "-x", "-A", trigger]
        try:
            result = self._run(argv, capture_output=True, text=True, errors="replace")
        except OSError as e:
            raise GateCheckFailed(f"{argv[0]} could not be launched: {e}") from e
        if result.returncode != 0:
            raise GateCheckFailed(
                f"{argv[0]} exited with status {result.returncode}: {(result.stderr or '').strip()}"
            )
        return result.stdout or ""

    def _run_stage(self, stage: str, granule_id: str, argv: List[str]) -> None:
        logger.info("Running %s for granule %s", stage, granule_id)
        logger.debug("%s argv: %s", stage, argv)
        try:
            result = self._run(argv, capture_output=True, text=True, errors="replace")
        except OSError as e:
            raise StageFailed(stage, granule_id, output=str(e)) from e
        if result.returncode != 0:
            output = "\n".join(s for s in (result.stdout, result.stderr) if s)
            raise StageFailed(stage, granule_id, returncode=result.returncode, output=output)
