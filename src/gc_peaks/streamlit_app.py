"""Streamlit interface for GC trace peak detection."""
from __future__ import annotations

import csv
import io

import streamlit as st

from .analysis import AnalysisConfig, analyze_trace
from .io_utils import TraceFormatError, load_trace_from_string
from .plotting import PEAK_FIELDS, build_peak_table, plot_analysis, save_plot_bytes

SCALE_CHOICES = [2.0, 5.0, 10.0, 20.0, 40.0, 80.0, 160.0]


def _peaks_to_csv(peaks) -> bytes:
    """Serialize peaks to CSV bytes buffer."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=PEAK_FIELDS)
    writer.writeheader()
    for row in build_peak_table(peaks):
        writer.writerow(row)
    return buf.getvalue().encode("utf-8")


def main():
    """Streamlit entry point."""
    st.set_page_config(page_title="GC Peak Detector", layout="wide")
    st.title("GC trace peak detector (multiscale DDOG)")
    st.write(
        "Upload a detector trace (JSON with a single detector's `values`). "
        "Peaks are located at several kernel widths and merged across scales."
    )

    with st.sidebar:
        st.header("Parameters")
        scales = st.multiselect(
            "Kernel scales (samples)",
            options=SCALE_CHOICES,
            default=[5.0, 10.0, 20.0, 40.0, 80.0],
        )
        sigma_multiplier = st.slider(
            "Noise threshold (x baseline std)",
            min_value=-10.0,
            max_value=0.0,
            value=-2.0,
            step=0.5,
        )
        baseline_samples = st.slider(
            "Baseline samples",
            min_value=10,
            max_value=1000,
            value=250,
            step=10,
        )
        grouping_constant = st.slider(
            "Grouping constant",
            min_value=0.5,
            max_value=5.0,
            value=1.5,
            step=0.1,
        )
        min_group_radius = st.slider(
            "Minimum merge radius (samples)",
            min_value=1.0,
            max_value=100.0,
            value=20.0,
            step=1.0,
        )
        smoothing_on = st.checkbox("Moving-average smoothing", value=False)
        smoothing_window = st.slider(
            "Smoothing window (points)",
            min_value=3,
            max_value=51,
            value=5,
            step=2,
        )

    upload = st.file_uploader("Trace JSON", type=["json"])

    if upload:
        try:
            content = upload.getvalue().decode("utf-8")
            values = load_trace_from_string(content)
        except (UnicodeDecodeError, TraceFormatError) as exc:
            st.error(f"Failed to read trace: {exc}")
            return

        if not scales:
            st.warning("Select at least one kernel scale.")
            return

        config = AnalysisConfig(
            scales=tuple(sorted(scales)),
            sigma_multiplier=sigma_multiplier,
            grouping_constant=grouping_constant,
            min_group_radius=min_group_radius,
            baseline_samples=baseline_samples,
            smoothing_window=smoothing_window if smoothing_on else 0,
        )

        result = analyze_trace(values, config)

        st.info(
            f"Detected {len(result.peaks)} peaks | threshold ~ {result.threshold:.3g} "
            f"| {len(result.candidates)} candidates over {len(config.scales)} scales"
        )

        col_plot, col_table = st.columns([2, 1])
        with col_plot:
            fig = plot_analysis(result, show_smoothed=smoothing_on)
            st.pyplot(fig)
            st.download_button(
                "Download plot (PNG)",
                data=save_plot_bytes(fig),
                file_name="gc_peaks.png",
                mime="image/png",
            )
        with col_table:
            if result.peaks:
                st.subheader("Peaks")
                st.table(build_peak_table(result.peaks))
                st.download_button(
                    "Download peaks (CSV)",
                    data=_peaks_to_csv(result.peaks),
                    file_name="peaks.csv",
                    mime="text/csv",
                )
            else:
                st.warning("No peaks detected under current settings.")
    else:
        st.info("Upload a trace file to start.")


if __name__ == "__main__":
    main()
