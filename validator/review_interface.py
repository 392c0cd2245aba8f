import pandas as pd
import streamlit as st

from utils.color_scale import fill_for_score, format_score


class MappingReviewer:
    def create_review_ui(self, result):
        """Streamlit panel for reviewing an assembled mapping run"""
        st.header("📊 Suggested Mapping")

        scores = [row.match_score for row in result.by_source]
        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Source Fields", len(result.by_source))
        col2.metric("Target Paths", len(result.dictionary))
        col3.metric("Avg Confidence", f"{sum(scores) / len(scores):.1%}" if scores else "n/a")
        col4.metric("Low Confidence (<60%)", result.low_confidence)

        order = st.radio("Order by", ["Score", "Source"], horizontal=True)
        rows = result.by_score if order == "Score" else result.by_source
        df = pd.DataFrame([row.to_record() for row in rows])
        if not df.empty:
            styled = df.style.map(
                lambda v: f"background-color: {fill_for_score(v)}", subset=['MatchScore']
            ).format({'MatchScore': format_score})
            st.dataframe(styled, use_container_width=True, height=400)

        if result.issues:
            with st.expander(f"⚠️ {len(result.issues)} issue(s) to review"):
                for issue in result.issues:
                    icon = "❌" if issue['severity'] == 'error' else "⚠️"
                    st.write(f"{icon} #{issue['source_order']}: {issue['message']}")
