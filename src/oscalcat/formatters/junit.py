"""JUnit XML formatter for coverage reports.

One testsuite per control family, one testcase per baseline control. Controls
whose status is in ``fail_on`` are reported as failures.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Optional
from xml.dom import minidom
from xml.etree import ElementTree as ET

from ..catalog.ids import extract_family_code
from ..models.tools import ControlCoverage, ControlCoverageReport, CoverageStatus


def build_coverage_junit(
    report: ControlCoverageReport,
    fail_on: Optional[list[CoverageStatus]] = None,
    suite_name: str = "Control Coverage",
) -> tuple[bytes, dict]:
    """Render a coverage report as pretty-printed JUnit XML.

    Returns:
        (xml bytes, dict with total_tests, failures, passed).
    """
    if fail_on is None:
        fail_on = [CoverageStatus.UNCOVERED]
    fail_set = set(fail_on)

    testsuites = ET.Element("testsuites")
    testsuites.set("name", suite_name)
    testsuites.set("timestamp", datetime.now().strftime("%Y-%m-%dT%H:%M:%S"))

    by_family: dict[str, list[ControlCoverage]] = defaultdict(list)
    for item in report.coverage:
        by_family[extract_family_code(item.control_id) or "?"].append(item)

    total_tests = 0
    total_failures = 0

    for family, items in by_family.items():
        testsuite = ET.SubElement(testsuites, "testsuite")
        testsuite.set("name", family)
        testsuite.set("tests", str(len(items)))
        suite_failures = 0

        for item in items:
            total_tests += 1
            testcase = ET.SubElement(testsuite, "testcase")
            testcase.set("name", item.control_id)
            testcase.set("classname", family)

            if item.status in fail_set:
                total_failures += 1
                suite_failures += 1
                failure = ET.SubElement(testcase, "failure")
                failure.set("message", f"{item.control_id} is {item.status.value}")
                failure.set("type", item.status.value)
                if item.tools:
                    failure.text = "Contributing tools: " + ", ".join(item.tools)
                else:
                    failure.text = "No selected tool maps to this control"

        testsuite.set("failures", str(suite_failures))
        testsuite.set("errors", "0")
        testsuite.set("skipped", "0")

    testsuites.set("tests", str(total_tests))
    testsuites.set("failures", str(total_failures))
    testsuites.set("errors", "0")

    rough = ET.tostring(testsuites, encoding="unicode")
    xml_bytes = minidom.parseString(rough).toprettyxml(indent="  ", encoding="UTF-8")
    return xml_bytes, {
        "total_tests": total_tests,
        "failures": total_failures,
        "passed": total_tests - total_failures,
    }


def export_coverage_junit(
    report: ControlCoverageReport,
    output_path: Path,
    fail_on: Optional[list[CoverageStatus]] = None,
    suite_name: str = "Control Coverage",
) -> dict:
    """Write the JUnit rendering of ``report`` to ``output_path``."""
    xml_bytes, summary = build_coverage_junit(report, fail_on, suite_name)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(xml_bytes)
    return {"path": str(output_path), **summary}
