#!/usr/bin/env python3
"""
End-to-end demo script for the contract analysis service.

Prerequisites:
    1. API running: uvicorn app.main:app
    2. OPENAI_API_KEY set in .env

Usage:
    python scripts/e2e_demo.py --file path/to/contract.pdf

    # Pasted text instead of a PDF:
    python scripts/e2e_demo.py --text path/to/contract.txt

    # Output raw JSON:
    python scripts/e2e_demo.py --file contract.pdf --json
"""

import argparse
import json
import sys
import time
from pathlib import Path

import httpx

# Configuration
API_BASE = "http://localhost:8000"
POLL_INTERVAL = 3  # seconds
MAX_WAIT = 180  # seconds

DEMO_PENALTY_RULES = [
    {"condition_text": "Late payment", "penalty_type": "percentage", "percentage": 5},
    {"condition_text": "Missing termination notice", "penalty_type": "fixed", "amount": 250},
]


def check_health(client: httpx.Client) -> bool:
    """Check if API is healthy."""
    try:
        resp = client.get(f"{API_BASE}/health")
        return resp.status_code == 200
    except httpx.RequestError:
        return False


def check_readiness(client: httpx.Client) -> dict:
    """Check readiness of the store and model credentials."""
    try:
        resp = client.get(f"{API_BASE}/health/ready")
        return resp.json()
    except httpx.RequestError as e:
        return {"error": str(e)}


def upload_pdf(client: httpx.Client, file_path: Path, name: str) -> dict:
    """Upload a PDF and start analysis."""
    with open(file_path, "rb") as f:
        files = {"file": (file_path.name, f, "application/pdf")}
        resp = client.post(f"{API_BASE}/api/contracts", files=files, data={"name": name})
        resp.raise_for_status()
        return resp.json()


def submit_text(client: httpx.Client, file_path: Path, name: str) -> dict:
    """Submit pasted contract text and start analysis."""
    body = {"name": name, "text": file_path.read_text(encoding="utf-8")}
    resp = client.post(f"{API_BASE}/api/contracts/text", json=body)
    resp.raise_for_status()
    return resp.json()


def get_contract(client: httpx.Client, document_id: str) -> dict:
    resp = client.get(f"{API_BASE}/api/contracts/{document_id}")
    resp.raise_for_status()
    return resp.json()


def poll_until_done(client: httpx.Client, document_id: str, max_wait: int = MAX_WAIT) -> dict:
    """Poll until the document is analyzed or failed."""
    start = time.time()
    while time.time() - start < max_wait:
        result = get_contract(client, document_id)
        status = result.get("status")

        if status in ("analyzed", "error"):
            return result

        elapsed = int(time.time() - start)
        print(f"  Status: {status} ({elapsed}s elapsed)", end="\r")
        time.sleep(POLL_INTERVAL)

    return {"status": "timeout", "error_message": f"Exceeded {max_wait}s wait time"}


def print_analysis(data: dict) -> None:
    """Pretty print the analysis of one contract."""
    extracted = data.get("extracted_data") or {}
    quality = data.get("quality_assessment") or {}

    print("\n" + "=" * 60)
    print("ANALYSIS RESULTS")
    print("=" * 60)

    if extracted.get("contract_summary"):
        print(f"\nSummary: {extracted['contract_summary']}")
    print(f"Effective Date: {extracted.get('effective_date') or 'N/A'}")
    print(f"Expiration Date: {extracted.get('expiration_date') or 'N/A'}")
    if extracted.get("parties_involved"):
        print(f"Parties: {', '.join(extracted['parties_involved'])}")
    if extracted.get("financial_terms"):
        print(f"Financial Terms: {extracted['financial_terms']}")

    if quality:
        print("\n--- Quality ---")
        print(f"  Score: {quality['quality_score']:.0%} ({quality['confidence_level']})")
        print(f"  Complete: {quality['is_complete']}")

    breach = (data.get("breach_detection") or {}).get("result")
    if breach:
        print("\n--- Breach Detection ---")
        print(f"  {breach['summary']}")
        for item in breach["potential_breaches"]:
            print(f"  - {item}")

    if data.get("penalties"):
        print("\n--- Penalties ---")
        for penalty in data["penalties"]:
            print(f"  {penalty['description']}: {penalty['amount']:,.2f} {penalty['currency']}")

    print("\n" + "=" * 60)


def main():
    parser = argparse.ArgumentParser(description="E2E demo for the contract analysis service")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", "-f", type=Path, help="Path to PDF file")
    source.add_argument("--text", "-t", type=Path, help="Path to a plain-text contract")
    parser.add_argument("--name", "-n", help="Contract name (defaults to the file name)")
    parser.add_argument("--json", action="store_true", help="Output raw JSON")
    args = parser.parse_args()

    path = args.file or args.text
    if not path.exists():
        print(f"Error: file not found: {path}")
        sys.exit(1)
    name = args.name or path.stem

    print("=" * 60)
    print("CONTRACT ANALYSIS - E2E DEMO")
    print("=" * 60)

    with httpx.Client(timeout=60.0) as client:
        # Step 1: Health check
        print("\n[1/6] Checking API health...")
        if not check_health(client):
            print("  Error: API is not responding. Start it with 'uvicorn app.main:app'.")
            sys.exit(1)
        print("  API is healthy")

        # Step 2: Readiness check
        print("\n[2/6] Checking service readiness...")
        readiness = check_readiness(client)
        if "error" in readiness:
            print(f"  Error: {readiness['error']}")
            sys.exit(1)
        for service, status in readiness.get("checks", {}).items():
            icon = "OK" if status == "ok" else "FAIL"
            print(f"  {service}: {icon}")
        if readiness.get("status") != "ok":
            print("  Error: Not all services are ready")
            sys.exit(1)

        # Step 3: Submit
        print(f"\n[3/6] Submitting: {path.name}")
        try:
            accepted = upload_pdf(client, path, name) if args.file else submit_text(client, path, name)
        except httpx.HTTPStatusError as e:
            print(f"  Error submitting: {e.response.text}")
            sys.exit(1)
        document_id = accepted["document_id"]
        print(f"  Document ID: {document_id}")

        # Step 4: Poll for completion
        print(f"\n[4/6] Waiting for analysis (max {MAX_WAIT}s)...")
        result = poll_until_done(client, document_id)
        if result.get("status") != "analyzed":
            print(f"  Analysis failed: {result.get('error_message', 'Unknown error')}")
            sys.exit(1)
        print("  Analysis completed!              ")

        # Step 5: Breach detection with default rules, then penalties
        print("\n[5/6] Running breach detection and penalties...")
        try:
            resp = client.post(f"{API_BASE}/api/contracts/{document_id}/breach-detection")
            resp.raise_for_status()
            resp = client.post(
                f"{API_BASE}/api/contracts/{document_id}/penalties",
                json={"rules": DEMO_PENALTY_RULES},
            )
            resp.raise_for_status()
            print(f"  Penalty total: {resp.json()['total']:,.2f}")
        except httpx.HTTPStatusError as e:
            print(f"  Error: {e.response.text}")
            sys.exit(1)

        # Step 6: CSV export
        print("\n[6/6] Exporting CSV...")
        resp = client.get(f"{API_BASE}/api/contracts/{document_id}/export")
        resp.raise_for_status()
        print(resp.text)

        result = get_contract(client, document_id)

    if args.json:
        print(json.dumps(result, indent=2, default=str))
    else:
        print_analysis(result)

    sys.exit(0)


if __name__ == "__main__":
    main()
