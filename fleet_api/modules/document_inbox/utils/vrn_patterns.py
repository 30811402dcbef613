#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/document_inbox/utils/vrn_patterns.py
# Indian Vehicle Registration Number (VRN) patterns and extraction utilities

import re
import logging
from typing import Optional, List, Tuple

from compliance_engine.models import registration_key

logger = logging.getLogger(__name__)


class VRNPatterns:
    """
    Indian Vehicle Registration Number (VRN) pattern recognition and extraction.

    Formats:
    - State series: SS-DD-LLL-NNNN (e.g., MH12AB1234, DL1CAX0001, KA 05 MN 4321)
    - Bharat series (2021+): YY-BH-NNNN-LL (e.g., 22BH1234AB)

    Where:
    - SS = State / union territory code (MH=Maharashtra, DL=Delhi, KA=Karnataka...)
    - DD = District RTO number
    - LLL = Optional series letters
    - NNNN = Sequential number
    - YY = Year of registration (Bharat series)
    """

    SEP = r'[\s\-\.]?'

    # Indian VRN Regex Patterns (ordered by specificity)
    PATTERNS = [
        # Bharat series: YY BH NNNN LL
        (rf'\b\d{{2}}{SEP}BH{SEP}\d{{4}}{SEP}[A-Z]{{1,2}}\b', 'bharat_series'),

        # State series with series letters: SS DD L{1,3} NNNN
        (rf'\b[A-Z]{{2}}{SEP}\d{{1,2}}{SEP}[A-Z]{{1,3}}{SEP}\d{{4}}\b', 'state_series'),

        # Older state series without series letters: SS DD NNNN
        (rf'\b[A-Z]{{2}}{SEP}\d{{1,2}}{SEP}\d{{4}}\b', 'state_series_no_letters'),
    ]

    # Compile patterns for performance
    COMPILED_PATTERNS = [(re.compile(pattern, re.IGNORECASE), name) for pattern, name in PATTERNS]

    # Valid state / union territory codes
    VALID_STATE_CODES = {
        'AN', 'AP', 'AR', 'AS', 'BR', 'CG', 'CH', 'DD', 'DL', 'DN', 'GA', 'GJ',
        'HP', 'HR', 'JH', 'JK', 'KA', 'KL', 'LA', 'LD', 'MH', 'ML', 'MN', 'MP',
        'MZ', 'NL', 'OD', 'OR', 'PB', 'PY', 'RJ', 'SK', 'TN', 'TR', 'TS', 'UK',
        'UP', 'WB',
    }

    # Common false positives to filter out
    FALSE_POSITIVES = [
        r'^\d{4}-\d{2}-\d{2}$',  # YYYY-MM-DD
        r'^\d{2}-\d{2}-\d{4}$',  # DD-MM-YYYY
    ]

    COMPILED_FALSE_POSITIVES = [re.compile(pattern) for pattern in FALSE_POSITIVES]

    def extract_vrn(self, text: str) -> Optional[str]:
        """
        Extract Vehicle Registration Number from text using regex patterns.

        Args:
            text: Text to search for VRN

        Returns:
            Normalized VRN string if found, None otherwise
        """
        if not text or len(text.strip()) < 6:
            return None

        candidates = []

        for pattern, pattern_name in self.COMPILED_PATTERNS:
            for match in pattern.finditer(text):
                value = match.group(0)
                if self._is_valid_vrn(value, pattern_name):
                    candidates.append((value, pattern_name, match.start()))
                    logger.debug(f"Found VRN candidate: '{value}' (pattern: {pattern_name})")

        if not candidates:
            return None

        best_vrn = self._select_best_vrn(candidates)

        if best_vrn:
            logger.info(f"✅ Extracted VRN: '{best_vrn}'")
        return best_vrn

    def extract_all_vrns(self, text: str) -> List[str]:
        """
        Extract all Vehicle Registration Numbers from text.

        Args:
            text: Text to search for VRNs

        Returns:
            List of normalized VRN strings, in order of first appearance
        """
        if not text or len(text.strip()) < 6:
            return []

        found = []
        for pattern, pattern_name in self.COMPILED_PATTERNS:
            for match in pattern.finditer(text):
                if self._is_valid_vrn(match.group(0), pattern_name):
                    found.append((match.start(), self.normalize_vrn(match.group(0))))

        vrns = []
        seen = set()
        for _, vrn in sorted(found):
            if vrn not in seen:
                vrns.append(vrn)
                seen.add(vrn)

        logger.info(f"📋 Found {len(vrns)} VRNs in text")
        return vrns

    def extract_vrn_from_filename(self, filename: str) -> Optional[str]:
        """
        Extracts a VRN from a filename.

        Examples:
            "MH12AB1234_insurance.pdf" -> "MH12AB1234"
            "dl-01-ca-1234 puc.jpg"    -> "DL01CA1234"
        """
        if not filename:
            return None

        stem = re.sub(r'\.[A-Za-z0-9]+$', '', filename)
        stem = stem.replace('_', ' ')
        vrn = self.extract_vrn(stem)
        if vrn:
            logger.debug(f"✅ VRN found in filename: {vrn}")
        return vrn

    def _is_valid_vrn(self, vrn: str, pattern_name: str) -> bool:
        """
        Validate if a potential VRN is actually a valid Indian VRN.

        Args:
            vrn: Potential VRN string
            pattern_name: Pattern that produced the match

        Returns:
            True if valid VRN, False otherwise
        """
        for false_pattern in self.COMPILED_FALSE_POSITIVES:
            if false_pattern.match(vrn):
                logger.debug(f"Filtered out false positive: '{vrn}'")
                return False

        if pattern_name == 'bharat_series':
            return True

        state_code = self._extract_state_code(vrn)
        if state_code not in self.VALID_STATE_CODES:
            logger.debug(f"Invalid state code: '{state_code}' in VRN '{vrn}'")
            return False

        return True

    @staticmethod
    def _extract_state_code(vrn: str) -> Optional[str]:
        key = registration_key(vrn)
        match = re.match(r'^([A-Z]{2})\d', key)
        return match.group(1) if match else None

    def _select_best_vrn(self, candidates: List[Tuple[str, str, int]]) -> Optional[str]:
        """
        Select the best VRN from multiple candidates.

        Priority:
        1. Full state series (with series letters) or Bharat series
        2. VRN that appears earlier in text
        """
        if not candidates:
            return None

        scored_candidates = []
        for vrn, pattern_name, position in candidates:
            score = 0
            if pattern_name in ('state_series', 'bharat_series'):
                score += 50
            score += max(0, 100 - position)
            scored_candidates.append((self.normalize_vrn(vrn), score))

        scored_candidates.sort(key=lambda x: x[1], reverse=True)

        best_vrn = scored_candidates[0][0]
        logger.debug(f"Selected best VRN: '{best_vrn}' from {len(candidates)} candidates")
        return best_vrn

    @staticmethod
    def normalize_vrn(vrn: str) -> str:
        """
        Normalize VRN to its compact form (the registration match key).

        Examples:
            "mh 12 ab 1234" -> "MH12AB1234"
            "22-BH-1234-AB" -> "22BH1234AB"
        """
        return registration_key(vrn)

    def is_vrn_format(self, text: str) -> bool:
        """
        Quick check if the whole text looks like a VRN.

        Args:
            text: Text to check

        Returns:
            True if text looks like VRN format
        """
        if not text or len(text.strip()) < 6:
            return False

        value = text.strip()
        for pattern, pattern_name in self.COMPILED_PATTERNS:
            match = pattern.fullmatch(value)
            if match and self._is_valid_vrn(value, pattern_name):
                return True

        return False


# Singleton instance
_vrn_patterns = VRNPatterns()


def extract_vrn(text: str) -> Optional[str]:
    """Convenience function to extract VRN from text."""
    return _vrn_patterns.extract_vrn(text)


def extract_all_vrns(text: str) -> List[str]:
    """Convenience function to extract all VRNs from text."""
    return _vrn_patterns.extract_all_vrns(text)


def extract_vrn_from_filename(filename: str) -> Optional[str]:
    """Convenience function to extract VRN from a filename."""
    return _vrn_patterns.extract_vrn_from_filename(filename)


def normalize_vrn(vrn: str) -> str:
    """Convenience function to normalize VRN format."""
    return _vrn_patterns.normalize_vrn(vrn)


def is_vrn_format(text: str) -> bool:
    """Convenience function to check if text looks like VRN."""
    return _vrn_patterns.is_vrn_format(text)
