"""
Run arguments loaded from a Java-style properties file.
"""

import configparser
import logging
import os
from typing import Any, Dict, Mapping, NamedTuple, Optional

from configuration import (
    PROP_MAX_THREADS,
    PROP_NUM_SKIERS,
    PROP_NUM_SKI_LIFTS,
    PROP_SKI_DAY,
    PROP_RESORT,
    PROP_HOST_ADDRESS,
    PROP_CSV_FILENAME,
    DEFAULT_NUM_SKIERS,
    DEFAULT_NUM_SKI_LIFTS,
    DEFAULT_SKI_DAY,
    DEFAULT_CSV_FILENAME,
    MIN_MAX_THREADS,
    MIN_NUM_SKIERS,
    MAX_NUM_SKIERS,
    MIN_NUM_SKI_LIFTS,
    MAX_NUM_SKI_LIFTS,
    MIN_SKI_DAY,
    MAX_SKI_DAY,
)
from common.errors import ConfigurationError

logger = logging.getLogger(__name__)

# configparser needs a section header; properties files have none
_SECTION = "arguments"


class Arguments(NamedTuple):
    """Validated, immutable run arguments."""

    max_threads: int
    num_skiers: int
    num_ski_lifts: int
    ski_day: int
    resort: str
    host_address: str
    csv_filename: str

    @classmethod
    def from_properties_file(cls, file_name: str,
                             overrides: Optional[Mapping[str, Any]] = None) -> "Arguments":
        """Create an Arguments instance from a properties file.

        Available properties:
            maxThreads (required, min 4)
            numSkiers (default 50000, 1-50000)
            numSkiLifts (default 40, 5-60)
            skiDay (default 1, 1-366)
            resort (required)
            hostAddress (required)
            csvFilename (default 'request-stats')

        Args:
            file_name: Path to the properties file
            overrides: Property values taking precedence over the file (None values ignored)

        Returns:
            Validated Arguments

        Raises:
            ConfigurationError: If the file is unreadable or any property is invalid
        """
        if not os.path.isfile(file_name):
            raise ConfigurationError(f"could not find properties file: {file_name}")

        try:
            with open(file_name, "r", encoding="utf-8") as fh:
                text = fh.read()
        except OSError as e:
            raise ConfigurationError(f"problem reading properties file: {e}") from e

        props = parse_properties(text)
        logger.debug(f"Read {len(props)} properties from {file_name}")
        return cls.from_properties(props, overrides)

    @classmethod
    def from_properties(cls, props: Mapping[str, str],
                        overrides: Optional[Mapping[str, Any]] = None) -> "Arguments":
        """Validate raw property values and build an Arguments instance."""
        merged: Dict[str, str] = dict(props)
        for key, value in (overrides or {}).items():
            if value is not None:
                merged[key] = str(value)

        resort = merged.get(PROP_RESORT)
        host_address = merged.get(PROP_HOST_ADDRESS)
        max_threads_raw = merged.get(PROP_MAX_THREADS)
        missing = [
            name for name, value in (
                (PROP_MAX_THREADS, max_threads_raw),
                (PROP_RESORT, resort),
                (PROP_HOST_ADDRESS, host_address),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(f"properties file missing required fields: {', '.join(missing)}")

        csv_filename = merged.get(PROP_CSV_FILENAME) or DEFAULT_CSV_FILENAME

        try:
            max_threads = int(max_threads_raw)
            num_skiers = int(merged.get(PROP_NUM_SKIERS, DEFAULT_NUM_SKIERS))
            num_ski_lifts = int(merged.get(PROP_NUM_SKI_LIFTS, DEFAULT_NUM_SKI_LIFTS))
            ski_day = int(merged.get(PROP_SKI_DAY, DEFAULT_SKI_DAY))
        except ValueError as e:
            raise ConfigurationError("could not parse properties - malformed numerical data") from e

        # Checked separately for better error messages
        if max_threads < MIN_MAX_THREADS:
            raise ConfigurationError(f"{PROP_MAX_THREADS} must be at least {MIN_MAX_THREADS}")
        if not MIN_NUM_SKIERS <= num_skiers <= MAX_NUM_SKIERS:
            raise ConfigurationError(
                f"{PROP_NUM_SKIERS} must be between {MIN_NUM_SKIERS} and {MAX_NUM_SKIERS}, inclusive")
        if not MIN_NUM_SKI_LIFTS <= num_ski_lifts <= MAX_NUM_SKI_LIFTS:
            raise ConfigurationError(
                f"{PROP_NUM_SKI_LIFTS} must be between {MIN_NUM_SKI_LIFTS} and {MAX_NUM_SKI_LIFTS}, inclusive")
        if not MIN_SKI_DAY <= ski_day <= MAX_SKI_DAY:
            raise ConfigurationError(
                f"{PROP_SKI_DAY} must be between {MIN_SKI_DAY} and {MAX_SKI_DAY}, inclusive")

        return cls(
            max_threads=max_threads,
            num_skiers=num_skiers,
            num_ski_lifts=num_ski_lifts,
            ski_day=ski_day,
            resort=resort.strip(),
            host_address=host_address.strip(),
            csv_filename=csv_filename.strip(),
        )


def parse_properties(text: str) -> Dict[str, str]:
    """Parse ``key=value`` / ``key: value`` lines into a dict, keeping key case.

    Raises:
        ConfigurationError: If the text is not a valid properties document
    """
    parser = configparser.ConfigParser(
        interpolation=None,
        delimiters=("=", ":"),
        comment_prefixes=("#", "!", ";"),
        strict=False,
    )
    parser.optionxform = str
    try:
        parser.read_string(f"[{_SECTION}]\n{text}")
    except configparser.Error as e:
        raise ConfigurationError(f"could not parse properties file: {e}") from e
    return dict(parser[_SECTION])
