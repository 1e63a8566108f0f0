#!/usr/bin/env python3
"""
Summarize an IEP or 504 plan PDF from the command line.

Usage:
    python3 scripts/summarize_document.py path/to/plan.pdf [student name]
"""

import sys
import os
import json
from pathlib import Path
from dotenv import load_dotenv

# Add the parent directory to the sys.path to import prismpath modules
sys.path.append(str(Path(__file__).parent.parent))

from prismpath.services.document_summarizer import summarize_document


def summarize_pdf(pdf_path, student_name=None):
    """Summarize a PDF file, print the result and save it next to the PDF."""
    print(f"Summarizing plan document: {pdf_path}")

    with open(pdf_path, "rb") as f:
        pdf_bytes = f.read()

    try:
        summary = summarize_document(pdf_bytes, Path(pdf_path).name, student_name=student_name).model_dump()
    except Exception as e:
        print(f"Error summarizing document: {str(e)}")
        raise

    print("\n=== Summary ===")
    print(summary["summary"])

    print(f"\n=== Accommodations ({len(summary['accommodations'])}) ===")
    for idx, accommodation in enumerate(summary["accommodations"]):
        print(f"  {idx + 1}. {accommodation}")

    output_file = Path(pdf_path).with_suffix(".json")
    with open(output_file, "w") as f:
        json.dump(summary, f, indent=2)

    print(f"\nSummary saved to: {output_file}")


if __name__ == "__main__":
    load_dotenv()

    if len(sys.argv) < 2:
        print("No PDF file provided. Usage:")
        print("python3 scripts/summarize_document.py path/to/plan.pdf [student name]")
        sys.exit(1)

    pdf_path = sys.argv[1]
    if not os.path.exists(pdf_path):
        print(f"Error: File '{pdf_path}' not found.")
        sys.exit(1)

    summarize_pdf(pdf_path, student_name=sys.argv[2] if len(sys.argv) > 2 else None)
