import os
from dotenv import load_dotenv

load_dotenv()

# license policy source (empty -> embedded default policy file)
LICENSE_POLICY_FILE = os.getenv("LICENSE_POLICY_FILE", "")

# expression evaluation: "restrictive" (most restrictive operand wins) or "spdx"
POLICY_COMBINATION_MODE = os.getenv("POLICY_COMBINATION_MODE", "restrictive")

# reject (instead of only logging) families whose members disagree on usage policy
STRICT_FAMILY_POLICIES = os.getenv("STRICT_FAMILY_POLICIES", "false").strip().lower() in {"1", "true", "yes"}

# nesting limit for parenthesized license expressions
MAX_EXPRESSION_DEPTH = int(os.getenv("MAX_EXPRESSION_DEPTH", "64"))

# reports and logging
REPORT_OUTPUT_DIR = os.getenv("REPORT_OUTPUT_DIR", "./output")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
