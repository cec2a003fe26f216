"""SkyPointer — Streamlit readout page: where am I pointing, and where is my target?

Run with ``streamlit run src/skypointer/app.py``. Browsers expose no IMU
stream to Streamlit, so the azimuth/altitude sliders stand in for the fused
orientation.
"""

import html

import streamlit as st
from dotenv import load_dotenv
from streamlit_js_eval import get_geolocation, streamlit_js_eval

load_dotenv()

from skypointer.bearing import bearing_to  # noqa: E402
from skypointer.catalog import CatalogStore  # noqa: E402
from skypointer.config import load_settings  # noqa: E402
from skypointer.ephemeris import EphemerisService  # noqa: E402
from skypointer.frames import to_equatorial  # noqa: E402
from skypointer.i18n import t  # noqa: E402
from skypointer.location import GeocodingError, geocode_observer, observer_from_fix  # noqa: E402
from skypointer.models import LocationFix, OrientationEstimate  # noqa: E402
from skypointer.search import SearchEngine  # noqa: E402

_settings = load_settings()

# --- Language detection (browser-first via streamlit-js-eval) ---
# On the first run the JS call returns None; the rerun triggered by
# streamlit_js_eval fills it in.
if "lang" not in st.session_state:
    _browser_lang: str | None = streamlit_js_eval(
        js_expressions="navigator.language", key="_lang_detect", height=0
    )
    if _browser_lang is not None:
        st.session_state.lang = "ko" if _browser_lang.lower().startswith("ko") else "en"

_lang: str = st.session_state.get("lang", _settings.lang)

st.set_page_config(page_title=t("page_title", _lang), page_icon="✦", layout="centered")

if "observer" not in st.session_state:
    st.session_state.observer = None
if "target" not in st.session_state:
    st.session_state.target = None
if "error_msg" not in st.session_state:
    st.session_state.error_msg = None


@st.cache_resource
def _catalog() -> CatalogStore:
    return CatalogStore.open(_settings.catalog_path)


@st.cache_resource
def _ephemeris() -> EphemerisService:
    return EphemerisService(frame=_settings.frame)


# --- Location: device geolocation first, typed address as fallback ---
if st.session_state.observer is None:
    _geo = get_geolocation()
    if _geo and "coords" in _geo:
        coords = _geo["coords"]
        st.session_state.observer = observer_from_fix(
            LocationFix(
                latitude=coords["latitude"],
                longitude=coords["longitude"],
                altitude=coords.get("altitude"),
            )
        )

if st.session_state.observer is None:
    st.info(t("loading_location", _lang))
    address = st.text_input(t("label_address", _lang))
    if st.button(t("btn_retry", _lang)) and address:
        try:
            st.session_state.observer = geocode_observer(address, lang=_lang)
            st.session_state.error_msg = None
        except GeocodingError as e:
            st.session_state.error_msg = t("error_location", _lang).format(error=html.escape(str(e)))
        st.rerun()
    if st.session_state.error_msg:
        st.error(st.session_state.error_msg)
    st.stop()

observer = st.session_state.observer
catalog = _catalog()
if not catalog.available:
    st.warning(t("error_catalog", _lang))

# --- Pointing ---
col_az, col_alt = st.columns(2)
with col_az:
    az = st.slider(t("label_azimuth", _lang), 0.0, 359.9, 180.0, step=0.1)
with col_alt:
    alt = st.slider(t("label_altitude", _lang), -90.0, 90.0, 30.0, step=0.1)

current = to_equatorial(OrientationEstimate(az_deg=az, alt_deg=alt), observer, frame=_settings.frame)

st.markdown(
    f"{t('label_azimuth', _lang)}: **{az:.1f}°** · {t('label_altitude', _lang)}: **{alt:.1f}°**  \n"
    f"{t('label_ra', _lang)}: **{current.ra_hours:.2f}h** · {t('label_dec', _lang)}: **{current.dec_deg:.2f}°**"
)

# --- Search ---
query = st.text_input(t("search_placeholder", _lang), max_chars=40)
engine = SearchEngine(
    stars=catalog.stars,
    positions=_ephemeris(),
    lang=_lang,
    limit=_settings.search_limit,
    star_scan_limit=_settings.star_scan_limit,
)
results = engine.search(query, observer)
if query and len(query) >= 2 and not results:
    st.caption(t("search_empty", _lang))
for obj in results:
    mag = "?" if obj.magnitude is None else f"{obj.magnitude:.1f}"
    if st.button(f"{obj.display_name}  ({mag})", key=f"pick_{obj.id}"):
        st.session_state.target = obj
        st.rerun()

# --- Guidance ---
target = st.session_state.target
if target is not None:
    result = bearing_to(
        target.coordinate,
        current,
        aligned_deg=_settings.aligned_deg,
        acquired_deg=_settings.acquired_deg,
    )
    st.subheader(f"{t('label_selected', _lang)}: {target.display_name}")
    st.markdown(
        f"{t('label_ra', _lang)}: {target.ra_hours:.2f}h · {t('label_dec', _lang)}: {target.dec_deg:.2f}°  \n"
        f"{t('label_distance', _lang)}: **{result.distance_deg:.2f}°** · "
        f"{t('label_direction', _lang)}: **{result.direction_deg:.0f}°**"
    )
    if result.aligned:
        st.success(t("status_aligned", _lang))
    elif result.acquired:
        st.info(t("status_acquired", _lang))
