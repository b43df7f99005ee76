import hashlib
import textwrap

import streamlit as st
import streamlit.components.v1 as components

from config.app_metadata import (
    GENUS_NAMES,
    MERMAID_DIAGRAMS,
    MISSING_CODES,
    UNITS,
    VARIABLES,
)
from coral.records import skip_reasons


def _render_mermaid(diagram: str, height: int = 260) -> None:
    diagram = textwrap.dedent(diagram).strip()
    node_id = f"mmd-{hashlib.md5(diagram.encode('utf-8')).hexdigest()}"
    html = f"""
    <div id="{node_id}" class="mermaid">
    {diagram}
    </div>
    <script src="https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.min.js"></script>
    <script>
      mermaid.initialize({{ startOnLoad: false }});
      const el = document.getElementById("{node_id}");
      if (el) {{
        mermaid.run({{ nodes: [el] }});
      }}
    </script>
    """
    components.html(html, height=height, scrolling=True)


def render_about(dataset) -> None:
    st.subheader("What this app is")
    st.write(
        "Coral Ontogeny Explorer follows individual coral colonies across annual surveys "
        "of two permanent back reef transects. Each colony is mapped at its fixed position "
        "and sized by its geometric mean diameter; the charts summarize population change, "
        "size structure, growth and survival by genus."
    )

    st.subheader("Dataset")
    st.markdown(
        f"- **Name**: {dataset.name}\n"
        f"- **Source**: `{dataset.source}`\n"
        f"- **Years**: {dataset.year_range[0]}–{dataset.year_range[1]}\n"
        f"- **Colonies**: {len(dataset.colonies):,} from {dataset.n_records:,} records\n"
        f"- **Genera**: {', '.join(GENUS_NAMES.get(g, g) for g in dataset.genera)}\n"
        f"- **Transects**: {', '.join(dataset.transects)}"
    )
    if dataset.skipped or dataset.notes:
        with st.expander(f"Parse report ({len(dataset.skipped)} skipped, {len(dataset.notes)} notes)"):
            for reason, count in sorted(skip_reasons(dataset.skipped).items()):
                st.markdown(f"- Skipped {count}: {reason}")
            for note in dataset.notes[:50]:
                st.markdown(f"- {note}")

    st.subheader("Data dictionary")
    st.table(
        [
            {"variable": name, "description": description, "unit": UNITS.get(name, "")}
            for name, description in VARIABLES.items()
        ]
    )

    st.subheader("Missing data codes")
    for code, meaning in MISSING_CODES.items():
        st.markdown(f"- `{code}`: {meaning}")

    st.subheader("Architecture diagrams")
    for title, diagram in MERMAID_DIAGRAMS.items():
        st.markdown(f"**{title}**")
        try:
            _render_mermaid(diagram)
        except Exception:
            st.code(diagram, language="mermaid")
