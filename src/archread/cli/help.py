"""Usage and general help text printed by ``rad --help``."""

GENERAL = """\
rad reads the archived history of one or more PVs (up to 20) between
START_TIME and END_TIME and writes it as a text table to OUTPUT_FILE.

Times are day first, e.g. "16/06/2020 16:30:00" or "16/Jun/2020 16:30";
trailing seconds, minutes or the whole time of day may be omitted.
ISO-8601 times are also accepted.

options:
  --utc             interpret and report times in UTC (default: local time)
  --raw             request raw archive samples (default: linear)
  --fixed SECONDS   resample onto a fixed interval (no less than 0.25 s)
  --archive URL     archive retrieval endpoint (default: $RAD_ARCHIVE_URL)
  --settings PATH   YAML settings file (default: $RAD_SETTINGS)

With more than one PV the output is always resampled, at 1 second unless
--fixed is given, so that every PV shares one row per sample time. PVs
with no archived data are reported as "nil".
"""
