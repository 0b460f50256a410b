import glob
import os
import sys

from fsr_report.config import PDF_QUALITY, REPORT_INPUT_DIR, REPORT_OUTPUT_DIR
from fsr_report.errors import FsrError
from fsr_report.report import ReportExporter
from fsr_report.store import record_from_json

# ────────────────────────────────────────────────
# Collect saved JSON snapshots
# ────────────────────────────────────────────────
def find_snapshots(args, input_dir=""):
    if args:
        return list(args)
    if input_dir:
        return sorted(glob.glob(os.path.join(input_dir, "*.json")))
    return []


def load_snapshot(path):
    with open(path, "r", encoding="utf-8") as f:
        return record_from_json(f.read())

# ────────────────────────────────────────────────
# Render each snapshot to <fsrNo>.pdf
# ────────────────────────────────────────────────
def generate_reports(paths, exporter, scale_factor=PDF_QUALITY):
    written, failed = [], []
    for path in paths:
        print(f"📄 Rendering {path}...")
        try:
            record = load_snapshot(path)
            pdf_path = exporter.export_pdf(record, scale_factor)
            print(f"✅ PDF saved: {pdf_path}")
            written.append(pdf_path)
        except (FsrError, OSError) as e:
            print(f"❌ Failed rendering '{path}': {e}")
            failed.append(path)
    return written, failed

# ────────────────────────────────────────────────
# Main
# ────────────────────────────────────────────────
def main(argv=None):
    paths = find_snapshots(sys.argv[1:] if argv is None else argv, REPORT_INPUT_DIR)
    if not paths:
        print("⚠️ No snapshots to render. Pass JSON files or set REPORT_INPUT_DIR.")
        return 1

    exporter = ReportExporter(REPORT_OUTPUT_DIR)
    _, failed = generate_reports(paths, exporter)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
