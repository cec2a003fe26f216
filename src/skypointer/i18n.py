"""Simple two-language (ko/en) translation helper."""

LANGUAGES = ("ko", "en")

_STRINGS: dict[str, dict[str, str]] = {
    "page_title": {
        "ko": "별 찾기",
        "en": "SkyPointer",
    },
    "body_sun": {"ko": "태양", "en": "Sun"},
    "body_moon": {"ko": "달", "en": "Moon"},
    "body_mercury": {"ko": "수성", "en": "Mercury"},
    "body_venus": {"ko": "금성", "en": "Venus"},
    "body_mars": {"ko": "화성", "en": "Mars"},
    "body_jupiter": {"ko": "목성", "en": "Jupiter"},
    "body_saturn": {"ko": "토성", "en": "Saturn"},
    "body_uranus": {"ko": "천왕성", "en": "Uranus"},
    "body_neptune": {"ko": "해왕성", "en": "Neptune"},
    "body_pluto": {"ko": "명왕성", "en": "Pluto"},
    "label_azimuth": {
        "ko": "방위각",
        "en": "Azimuth",
    },
    "label_altitude": {
        "ko": "고도각",
        "en": "Altitude",
    },
    "label_ra": {
        "ko": "적경",
        "en": "RA",
    },
    "label_dec": {
        "ko": "적위",
        "en": "Dec",
    },
    "label_selected": {
        "ko": "선택된 천체",
        "en": "Selected",
    },
    "label_distance": {
        "ko": "거리",
        "en": "Distance",
    },
    "label_direction": {
        "ko": "방향",
        "en": "Direction",
    },
    "label_address": {
        "ko": "장소",
        "en": "Location",
    },
    "search_placeholder": {
        "ko": "천체 이름을 입력하세요",
        "en": "Type an object name",
    },
    "search_empty": {
        "ko": "검색 결과가 없습니다",
        "en": "No matches",
    },
    "status_aligned": {
        "ko": "정렬됨",
        "en": "Aligned",
    },
    "status_acquired": {
        "ko": "목표 포착",
        "en": "Target in view",
    },
    "loading_location": {
        "ko": "위치 권한/데이터 로딩 중...",
        "en": "Waiting for location...",
    },
    "error_location": {
        "ko": "위치 정보가 필요합니다. 다시 시도해 주세요. ({error})",
        "en": "Location is required. Please retry. ({error})",
    },
    "btn_retry": {
        "ko": "권한 요청",
        "en": "Retry",
    },
    "error_catalog": {
        "ko": "별 목록을 불러오지 못했습니다. 태양계 천체만 검색됩니다.",
        "en": "Star catalog unavailable. Only solar-system bodies are searchable.",
    },
}


def t(key: str, lang: str) -> str:
    """Return the translated string for key in lang.

    Falls back to 'en', then to the key itself if not found.
    """
    entry = _STRINGS.get(key)
    if entry is None:
        return key
    return entry.get(lang) or entry.get("en") or key
