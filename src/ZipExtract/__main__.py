# === NAVMAP v1 ===
# {
#   "module": "ZipExtract.__main__",
#   "purpose": "Entry point for CLI invocation via python -m.",
#   "sections": []
# }
# === /NAVMAP ===

"""Entry point for CLI invocation via python -m."""

from ZipExtract.cli import main

if __name__ == "__main__":
    main()
