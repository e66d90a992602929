"""Weather report parser wrapping metar_taf_parser library."""

import re
import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from dateutil.relativedelta import relativedelta

from aerotrip.weather.models import ForecastPeriod, WeatherReport, WeatherType

logger = logging.getLogger(__name__)

# Meters to statute miles conversion
_METERS_TO_SM = 0.000621371
_SM_TO_METERS = 1609.34

# Visibility assumed when a report does not carry one
DEFAULT_VISIBILITY_SM = 10.0

_WIND_UNIT_TO_KT = {
    'KT': 1.0,
    'MPS': 1.94384,
    'KMH': 0.539957,
}

# A report must carry a station followed by a DDHHMMZ issue time
_ANCHOR = re.compile(r'(?:^|\s)([A-Z][A-Z0-9]{3})\s+(\d{2})(\d{2})(\d{2})Z(?=\s|$)')
# Forecasts relayed without issue time still carry a DDHH/DDHH validity
_TAF_VALIDITY_ANCHOR = re.compile(r'(?:^|\s)([A-Z][A-Z0-9]{3})\s+(?:\d{6}Z\s+)?\d{4}/\d{4}(?=\s|$)')
# Statute-mile visibility: "10SM", "1/2SM", "1 1/2SM", "P6SM", "M1/4SM"
_SM_VISIBILITY = re.compile(r'(?:^|\s)([PM]?(?:\d+\s\d/\d|\d+/\d+|\d+))SM(?=\s|$)')
# Wind group: "27015KT", "270100KT", "VRB05KT", "27065G105KT", "24008MPS"
_WIND_GROUP = re.compile(r'(?:^|\s)(VRB|\d{3})(\d{2,3})(?:G(\d{2,3}))?(KT|MPS|KMH)(?=\s|$)')
_WIND_VARIATION = re.compile(r'(?:^|\s)(\d{3})V(\d{3})(?=\s|$)')
# Boundaries of change groups and remarks
_GROUP_BREAK = re.compile(r'\s(?=RMK\b|TEMPO\b|BECMG\b|PROB\d{2}\b|FM\d{6}\b)')
_FROM_GROUP = re.compile(r'FM\d{6}.*?(?=\sFM\d{6}\b|$)')


class WeatherParser:
    """
    Parse current-conditions (METAR) and forecast (TAF) reports into
    WeatherReport objects.

    Uses the metar_taf_parser library for the heavy lifting, then
    extracts fields into our WeatherReport dataclass. Day-of-month
    timestamps are anchored to ``reference_time`` (current UTC time by
    default) so the same text and reference always give the same report.

    Example:
        report = WeatherParser.parse_metar(
            "KTEB 211253Z 24015G25KT 10SM FEW040 18/09 A2992"
        )
    """

    @classmethod
    def parse_metar(
        cls,
        raw_text: str,
        source: str = "",
        reference_time: Optional[datetime] = None,
    ) -> Optional[WeatherReport]:
        """
        Parse a METAR string.

        Args:
            raw_text: Raw METAR text (may include "METAR" or "SPECI" prefix)
            source: Data source identifier
            reference_time: Time used to resolve the day-of-month timestamp

        Returns:
            WeatherReport or None if the text is not a usable report
        """
        from metar_taf_parser.parser.parser import MetarParser

        text = " ".join(raw_text.split()) if raw_text else ""
        if not text:
            return None

        report_type = WeatherType.METAR
        clean = text
        if clean.upper().startswith("SPECI"):
            report_type = WeatherType.SPECI
            clean = clean[5:].strip()
        elif clean.upper().startswith("METAR"):
            clean = clean[5:].strip()

        if clean.upper().startswith("COR"):
            clean = clean[3:].strip()

        anchor = _ANCHOR.search(clean)
        if not anchor:
            logger.debug("No station/time anchor in METAR: %s", raw_text[:80])
            return None

        if "NIL" in clean.upper().split():
            return None

        try:
            parsed = MetarParser().parse(clean)
        except Exception as e:
            logger.debug("Failed to parse METAR: %s - %s", raw_text[:80], e)
            return None

        if getattr(parsed, 'nil', False):
            return None

        reference = cls._reference(reference_time)
        station, day, hour, minute = anchor.groups()
        obs_time = cls._resolve_day_time(reference, int(day), int(hour), int(minute))

        report = cls._build_report(parsed, clean, report_type, raw_text, source)
        report.icao = parsed.station or station
        report.observation_time = obs_time

        from aerotrip.weather.analysis import WeatherAnalyzer
        report.flight_category = WeatherAnalyzer.flight_category(report)
        return report

    @classmethod
    def parse_taf(
        cls,
        raw_text: str,
        source: str = "",
        reference_time: Optional[datetime] = None,
    ) -> Optional[WeatherReport]:
        """
        Parse a TAF string into a report with resolved FROM periods.

        Args:
            raw_text: Raw TAF text ("TAF" prefix optional)
            source: Data source identifier
            reference_time: Time used to resolve day-of-month timestamps

        Returns:
            WeatherReport or None if parsing fails
        """
        from metar_taf_parser.parser.parser import TAFParser

        text = " ".join(raw_text.split()) if raw_text else ""
        if not text:
            return None

        # Ensure TAF prefix for the parser
        if not text.upper().startswith("TAF"):
            text = "TAF " + text

        if not (_ANCHOR.search(text) or _TAF_VALIDITY_ANCHOR.search(text)):
            logger.debug("No station/time anchor in TAF: %s", raw_text[:80])
            return None

        upper = text.upper()
        if " NIL" in upper or " CNL" in upper:
            return None

        try:
            parsed = TAFParser().parse(text)
        except Exception as e:
            logger.debug("Failed to parse TAF: %s - %s", raw_text[:80], e)
            return None

        if getattr(parsed, 'nil', False) or getattr(parsed, 'canceled', False):
            return None

        reference = cls._reference(reference_time)
        report = cls._build_report(parsed, text, WeatherType.TAF, raw_text, source)

        anchor = _ANCHOR.search(text)
        if anchor:
            _, day, hour, minute = anchor.groups()
            report.observation_time = cls._resolve_day_time(reference, int(day), int(hour), int(minute))

        validity = getattr(parsed, 'validity', None)
        if validity:
            report.validity_start, report.validity_end = cls._extract_validity(validity, reference)

        from aerotrip.weather.analysis import WeatherAnalyzer
        report.flight_category = WeatherAnalyzer.flight_category(report)
        report.periods = cls._build_periods(parsed, report, reference)
        return report

    @classmethod
    def parse_auto(
        cls,
        raw_text: str,
        source: str = "",
        reference_time: Optional[datetime] = None,
    ) -> Optional[WeatherReport]:
        """Auto-detect METAR vs TAF and parse accordingly."""
        text = raw_text.strip().upper()
        if text.startswith("TAF"):
            return cls.parse_taf(raw_text, source, reference_time)
        return cls.parse_metar(raw_text, source, reference_time)

    # --- Internal builders ---

    @classmethod
    def _build_report(
        cls,
        parsed,
        clean_text: str,
        report_type: WeatherType,
        raw_text: str,
        source: str,
    ) -> WeatherReport:
        """Build WeatherReport fields common to METAR and TAF bodies."""
        body = cls._body_text(clean_text)
        wind_dir, wind_speed, wind_gust, wind_var_from, wind_var_to = cls._extract_wind(parsed, body)
        vis_m, vis_sm = cls._extract_visibility(parsed, body)
        if vis_sm is None:
            vis_sm = DEFAULT_VISIBILITY_SM
            vis_m = int(DEFAULT_VISIBILITY_SM * _SM_TO_METERS)

        return WeatherReport(
            icao=parsed.station or "",
            report_type=report_type,
            raw_text=raw_text.strip(),
            wind_direction=wind_dir,
            wind_speed=wind_speed,
            wind_gust=wind_gust,
            wind_variable_from=wind_var_from,
            wind_variable_to=wind_var_to,
            visibility_meters=vis_m,
            visibility_sm=vis_sm,
            ceiling_ft=cls._extract_ceiling(parsed),
            cavok=bool(getattr(parsed, 'cavok', False)),
            clouds=cls._extract_clouds(parsed),
            weather_conditions=cls._extract_weather_conditions(parsed),
            source=source,
        )

    @classmethod
    def _build_periods(cls, parsed_taf, report: WeatherReport, reference: datetime) -> List[ForecastPeriod]:
        """
        Resolve the base forecast and its FM groups into periods.

        Each FM period starts from a copy of the previous period and
        overrides only the fields the group specifies. TEMPO, BECMG and
        PROB groups do not create periods.
        """
        from aerotrip.weather.analysis import WeatherAnalyzer

        base = ForecastPeriod(
            valid_from=report.validity_start,
            valid_to=report.validity_end,
            wind_direction=report.wind_direction,
            wind_speed=report.wind_speed,
            wind_gust=report.wind_gust,
            visibility_sm=report.visibility_sm,
            ceiling_ft=report.ceiling_ft,
            cavok=report.cavok,
            weather_conditions=list(report.weather_conditions),
            flight_category=report.flight_category,
        )
        periods = [base]
        group_texts = cls._from_group_texts(" ".join(report.raw_text.split()))
        from_index = 0

        for trend in getattr(parsed_taf, 'trends', None) or []:
            if not cls._is_from_group(trend):
                continue
            group_text = group_texts[from_index] if from_index < len(group_texts) else None
            from_index += 1
            start, _ = cls._extract_validity(getattr(trend, 'validity', None), reference)
            if start is None and group_text:
                start = cls._from_group_start(group_text, reference)
            if start is None:
                continue

            previous = periods[-1]
            period = ForecastPeriod(
                valid_from=start,
                valid_to=report.validity_end,
                wind_direction=previous.wind_direction,
                wind_speed=previous.wind_speed,
                wind_gust=previous.wind_gust,
                visibility_sm=previous.visibility_sm,
                ceiling_ft=previous.ceiling_ft,
                cavok=previous.cavok,
                weather_conditions=list(previous.weather_conditions),
                change_type="FM",
            )

            if getattr(trend, 'wind', None) or (group_text and _WIND_GROUP.search(group_text)):
                (period.wind_direction, period.wind_speed, period.wind_gust, _, _) = cls._extract_wind(trend, group_text)

            if getattr(trend, 'cavok', False):
                period.cavok = True
                period.ceiling_ft = None
                period.visibility_sm = 10000 * _METERS_TO_SM
            else:
                _, vis_sm = cls._extract_visibility(trend, group_text)
                if vis_sm is not None:
                    period.visibility_sm = vis_sm
                    period.cavok = False
                if getattr(trend, 'clouds', None):
                    period.ceiling_ft = cls._extract_ceiling(trend)
                    period.cavok = False

            conditions = cls._extract_weather_conditions(trend)
            if conditions:
                period.weather_conditions = conditions

            period.flight_category = WeatherAnalyzer.flight_category(period)
            previous.valid_to = start
            periods.append(period)

        return periods

    @classmethod
    def _from_group_start(cls, group_text: str, reference: datetime) -> Optional[datetime]:
        match = re.match(r'FM(\d{2})(\d{2})(\d{2})', group_text)
        if not match:
            return None
        day, hour, minute = (int(g) for g in match.groups())
        return cls._resolve_day_time(reference, day, hour, minute)

    @staticmethod
    def _is_from_group(trend) -> bool:
        trend_type = getattr(trend, 'type', None)
        name = getattr(trend_type, 'name', None) or str(trend_type or '')
        return name.upper() == 'FM' or type(trend).__name__.upper().startswith('FM')

    # --- Time helpers ---

    @staticmethod
    def _reference(reference_time: Optional[datetime]) -> datetime:
        if reference_time is None:
            return datetime.now(timezone.utc)
        if reference_time.tzinfo is None:
            return reference_time.replace(tzinfo=timezone.utc)
        return reference_time.astimezone(timezone.utc)

    @staticmethod
    def _resolve_day_time(reference: datetime, day: int, hour: int, minute: int = 0) -> datetime:
        """
        Anchor a day-of-month timestamp to the month of ``reference``.

        A day far ahead of the reference belongs to the previous month and
        a day far behind it to the next one. Hour 24 rolls to the next day.
        """
        month_start = reference.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if day > reference.day + 15:
            month_start -= relativedelta(months=1)
        elif day < reference.day - 15:
            month_start += relativedelta(months=1)
        return month_start + relativedelta(days=day - 1, hours=hour, minutes=minute)

    @classmethod
    def _extract_validity(cls, validity, reference: datetime) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Extract a validity window as (start, end); end is None for FM groups."""
        if validity is None:
            return None, None

        start_day = getattr(validity, 'start_day', None)
        start_hour = getattr(validity, 'start_hour', None)
        start_minutes = getattr(validity, 'start_minutes', 0) or 0
        if start_day is None or start_hour is None:
            return None, None

        val_start = cls._resolve_day_time(reference, start_day, start_hour, start_minutes)

        end_day = getattr(validity, 'end_day', None)
        end_hour = getattr(validity, 'end_hour', None)
        if end_day is None or end_hour is None:
            return val_start, None

        val_end = cls._resolve_day_time(reference, end_day, end_hour)
        if val_end < val_start:
            val_end += relativedelta(months=1)
        return val_start, val_end

    # --- Field extraction helpers ---

    @staticmethod
    def _body_text(text: str) -> str:
        """Leading report body, without remarks or change groups."""
        return _GROUP_BREAK.split(text, 1)[0]

    @staticmethod
    def _from_group_texts(text: str) -> List[str]:
        """Text of each FM group, in order, cut before any following group."""
        chunks = []
        for match in _FROM_GROUP.finditer(text):
            chunks.append(_GROUP_BREAK.split(match.group(0), 1)[0])
        return chunks

    @classmethod
    def _extract_wind(cls, parsed, text: Optional[str] = None) -> tuple:
        """
        Extract wind data. Returns (dir, speed, gust, var_from, var_to).

        The wind group is read from the report text when available so
        three-digit speeds are kept whole. Speeds are converted to knots.
        A missing wind group is treated as calm.
        """
        match = _WIND_GROUP.search(text) if text else None
        if match:
            direction_text, speed_text, gust_text, unit = match.groups()
            factor = _WIND_UNIT_TO_KT[unit]
            direction = None if direction_text == 'VRB' else int(direction_text)
            speed = int(round(int(speed_text) * factor))
            gust = int(round(int(gust_text) * factor)) if gust_text else None
            if speed == 0 and not gust:
                direction = None
            variation = _WIND_VARIATION.search(text)
            if variation:
                var_from, var_to = int(variation.group(1)), int(variation.group(2))
            else:
                wind = getattr(parsed, 'wind', None)
                var_from = getattr(wind, 'min_variation', None) if wind else None
                var_to = getattr(wind, 'max_variation', None) if wind else None
            return direction, speed, gust, var_from, var_to

        wind = getattr(parsed, 'wind', None)
        if not wind:
            return None, 0, None, None, None

        unit = (getattr(wind, 'unit', 'KT') or 'KT').upper()
        factor = _WIND_UNIT_TO_KT.get(unit, 1.0)

        direction = getattr(wind, 'degrees', None)
        speed = getattr(wind, 'speed', None) or 0
        gust = getattr(wind, 'gust', None)
        var_from = getattr(wind, 'min_variation', None)
        var_to = getattr(wind, 'max_variation', None)

        speed = int(round(speed * factor))
        if gust is not None:
            gust = int(round(gust * factor))
        if speed == 0 and not gust:
            direction = None

        return direction, speed, gust, var_from, var_to

    @classmethod
    def _extract_visibility(cls, parsed, text: Optional[str] = None) -> tuple:
        """
        Extract visibility in meters and statute miles.

        Statute-mile groups are read from the report text when available so
        mixed numbers such as "1 1/2SM" keep their whole part.

        Returns:
            (visibility_meters, visibility_sm)
        """
        if getattr(parsed, 'cavok', False):
            return 10000, 10000 * _METERS_TO_SM

        if text:
            match = _SM_VISIBILITY.search(text)
            if match:
                vis_sm = cls._safe_parse_fraction(match.group(1))
                if vis_sm is not None:
                    return int(vis_sm * _SM_TO_METERS), vis_sm

        vis = getattr(parsed, 'visibility', None)
        if not vis:
            return None, None

        distance = getattr(vis, 'distance', None)
        if distance is None:
            return None, None

        vis_str = str(distance).replace('>', '').replace('<', '').strip()
        if not vis_str:
            return None, None

        vis_m = None
        vis_sm = None
        upper = vis_str.upper()

        if upper.endswith('SM'):
            vis_sm = cls._safe_parse_fraction(upper[:-2].strip())
            if vis_sm is not None:
                vis_m = int(vis_sm * _SM_TO_METERS)
        elif upper.endswith('KM'):
            try:
                vis_m = int(float(upper[:-2].strip()) * 1000)
                vis_sm = vis_m * _METERS_TO_SM
            except ValueError:
                pass
        elif upper.endswith('M'):
            try:
                vis_m = int(float(upper[:-1].strip()))
                vis_sm = vis_m * _METERS_TO_SM
            except ValueError:
                pass
        else:
            # Plain number: meters
            try:
                vis_m = int(float(vis_str))
                vis_sm = vis_m * _METERS_TO_SM
            except ValueError:
                pass

        return vis_m, vis_sm

    @classmethod
    def _safe_parse_fraction(cls, text: str) -> Optional[float]:
        """
        Safely parse a fractional number string.

        Handles: "1/2", "2 1/2", "1", "0.5", "M1/4" (M = less than), "P6"

        Returns:
            Float value or None if unparseable
        """
        text = text.strip()
        if not text:
            return None

        if text[0].upper() in ("M", "P"):
            text = text[1:].strip()

        try:
            return float(text)
        except ValueError:
            pass

        # Mixed number: "2 1/2"
        if " " in text and "/" in text:
            parts = text.split(None, 1)
            if len(parts) == 2:
                try:
                    whole = float(parts[0])
                except ValueError:
                    return None
                frac = cls._parse_simple_fraction(parts[1])
                if frac is not None:
                    return whole + frac

        if "/" in text:
            return cls._parse_simple_fraction(text)

        return None

    @staticmethod
    def _parse_simple_fraction(text: str) -> Optional[float]:
        """Parse a simple fraction like '1/2' or '3/4'."""
        parts = text.split("/")
        if len(parts) != 2:
            return None
        try:
            num = float(parts[0])
            den = float(parts[1])
        except ValueError:
            return None
        if den == 0:
            return None
        return num / den

    @classmethod
    def _extract_ceiling(cls, parsed) -> Optional[int]:
        """
        Extract ceiling from cloud layers.

        Ceiling is the lowest BKN (broken) or OVC (overcast) layer; FEW and
        SCT layers never form a ceiling.

        Returns:
            Ceiling in feet, or None if no ceiling
        """
        from metar_taf_parser.model.enum import CloudQuantity

        clouds = getattr(parsed, 'clouds', None)
        if not clouds:
            return None

        ceiling = None
        for cloud in clouds:
            quantity = getattr(cloud, 'quantity', None)
            height = getattr(cloud, 'height', None)
            if quantity in (CloudQuantity.BKN, CloudQuantity.OVC) and height is not None:
                if ceiling is None or height < ceiling:
                    ceiling = height

        return ceiling

    @classmethod
    def _extract_clouds(cls, parsed) -> List[Dict[str, Any]]:
        """Extract cloud layers as list of dicts."""
        clouds = getattr(parsed, 'clouds', None)
        if not clouds:
            return []

        result = []
        for cloud in clouds:
            result.append({
                'quantity': getattr(cloud.quantity, 'name', str(cloud.quantity)) if cloud.quantity else None,
                'height': getattr(cloud, 'height', None),
            })
        return result

    @classmethod
    def _extract_weather_conditions(cls, parsed) -> List[str]:
        """Extract weather conditions as report-style codes ("+TSRA", "FZDZ")."""
        conditions = getattr(parsed, 'weather_conditions', None)
        if not conditions:
            return []

        result = []
        for wc in conditions:
            parts = []
            intensity = getattr(wc, 'intensity', None)
            if intensity:
                parts.append(intensity.value if hasattr(intensity, 'value') else str(intensity))
            descriptive = getattr(wc, 'descriptive', None)
            if descriptive:
                parts.append(descriptive.value if hasattr(descriptive, 'value') else str(descriptive))
            for p in getattr(wc, 'phenomenons', None) or []:
                parts.append(p.value if hasattr(p, 'value') else str(p))
            if parts:
                result.append("".join(parts))
        return result
