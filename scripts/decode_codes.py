"""
Batch-decode promocodes into a CSV report.

Usage:
    python scripts/decode_codes.py codes.txt [report.csv]

Input is one code per line, or a CSV with a "code" column. Uses the default
ruleset; brand/product names are not resolved.
"""

import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

import pandas as pd

from app.services.decode import decode
from app.services.rulesets import default_ruleset


def load_codes(path: str):
    if path.lower().endswith(".csv"):
        return [str(c).strip() for c in pd.read_csv(path)["code"].dropna()]
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 2

    in_path = argv[1]
    out_path = argv[2] if len(argv) > 2 else os.path.splitext(in_path)[0] + "_decoded.csv"

    ruleset = default_ruleset()
    rows = []
    for code in load_codes(in_path):
        result = decode(code, ruleset)
        row = {"code": code, "is_valid": result.is_valid, "error": result.error, "summary": result.summary}
        row.update(result.parsed.model_dump())
        rows.append(row)

    pd.DataFrame(rows).to_csv(out_path, index=False)
    print(f"Decoded {len(rows)} codes -> {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
