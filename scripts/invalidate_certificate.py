#!/usr/bin/env python3
"""
Invalidate an issued certificate so that public verification rejects it.

Run: python scripts/invalidate_certificate.py CERT-2025-046-A1B2C3 "Academic misconduct"
     python scripts/invalidate_certificate.py --id 6f1c... "Issued in error"
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))


def main() -> int:
    parser = argparse.ArgumentParser(description="Invalidate a certificate.")
    parser.add_argument("certificate", help="Certificate number, or certificate id with --id")
    parser.add_argument("reason", help="Reason recorded on the certificate")
    parser.add_argument("--id", action="store_true", help="Treat the first argument as the certificate id")
    args = parser.parse_args()

    from assessment.config import SessionLocal
    from assessment.errors import AssessmentError
    from assessment.models import Certificate
    from assessment.services.certificate_issuer import CertificateIssuer
    from assessment.utils.common import transaction

    db = SessionLocal()
    try:
        if args.id:
            certificate_id = args.certificate
        else:
            row = db.query(Certificate.id).filter(Certificate.certificate_number == args.certificate).first()
            if row is None:
                print(f"Certificate {args.certificate} not found", file=sys.stderr)
                return 1
            certificate_id = row[0]

        try:
            with transaction(db):
                certificate = CertificateIssuer(db).invalidate_certificate(certificate_id, args.reason)
        except AssessmentError as e:
            print(f"{e.code}: {e.message}", file=sys.stderr)
            return 1
        print(f"{certificate.certificate_number} invalidated at {certificate.invalidated_at}: {certificate.invalidated_reason}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
