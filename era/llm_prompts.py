from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

# Canonical order of recognized data points with the bullet each one adds.
DATA_POINT_BULLETS: Tuple[Tuple[str, str], ...] = (
    ("choice", "- Track which specific option/choice the user selects"),
    ("allClicks", "- Record all clicks made by the user anywhere on the page"),
    ("decisionTime", "- Track the total time spent on the page before making a final decision"),
    ("maxScroll", "- Record the maximum scroll depth reached by the user (as percentage)"),
)

QUERY_CONTRACT = "?choice=X&decisionTime=Y&allClicks=Z&maxScroll=W"

MINIMAL_PROMPT = "Recreate the UI shown in the attached screenshot as accurately as possible."


class ExperimentSpec(BaseModel):
    """Experiment parameters submitted alongside the screenshot.

    ``None`` means the form field was not submitted at all; an empty string
    means it was submitted blank.
    """

    redirect_condition: Optional[str] = None
    tracked_data_points: List[str] = Field(default_factory=list)
    modifications: Optional[str] = None
    multiple_versions: Optional[str] = None
    version_difference: Optional[str] = None
    survey_redirect_url: Optional[str] = None

    @property
    def has_multiple_versions(self) -> bool:
        return self.multiple_versions == "Yes"

    def is_complete(self) -> bool:
        """True when the full experiment prompt can be built from this spec."""
        return (
            self.redirect_condition is not None
            and self.multiple_versions is not None
            and self.survey_redirect_url is not None
        )


def build_prompt(spec: ExperimentSpec) -> str:
    """Build the generation prompt for a consumer choice experiment page.

    Deterministic: the same spec always yields the same text. Unknown data
    points are listed in the tracking sentence but get no bullet of their own.
    """
    data_points = list(spec.tracked_data_points)
    redirect = spec.redirect_condition or ""
    survey_url = spec.survey_redirect_url or ""

    prompt = (
        "Create a complete HTML webpage that recreates the design shown in the uploaded screenshot. "
        "This is for a consumer choice experiment with the following requirements:\n"
        "\n"
        "DESIGN & LAYOUT:\n"
        "- Recreate the visual design, layout, colors, fonts, and overall appearance exactly as shown in the screenshot\n"
        "- Ensure the webpage looks professional, authentic, and matches the original\n"
        "- Make it fully responsive for different screen sizes\n"
        "- Use modern CSS techniques and clean code structure\n"
        "\n"
        "TRACKING & ANALYTICS:\n"
        f"Please add JavaScript to track user interactions and record the following data points: {', '.join(data_points)}\n"
    )

    for name, bullet in DATA_POINT_BULLETS:
        if name in data_points:
            prompt += bullet + "\n"

    if spec.modifications and spec.modifications.strip():
        customization = f"- Apply these specific changes from the original: {spec.modifications}"
    else:
        customization = "- No specific modifications requested - recreate exactly as shown"

    if spec.has_multiple_versions:
        versions = (
            "- This experiment requires multiple versions with the following differences: "
            f"{spec.version_difference or ''}"
        )
    else:
        versions = "- Single version only"

    prompt += (
        "\n"
        "REDIRECT & INTEGRATION:\n"
        f"- Redirect to {survey_url} when the user {redirect}\n"
        f"- Pass all tracked data as URL parameters to Qualtrics in this format: {QUERY_CONTRACT}\n"
        "- Ensure the redirect happens smoothly without any errors\n"
        "\n"
        "CUSTOMIZATIONS:\n"
        f"{customization}\n"
        "\n"
        "EXPERIMENT VERSIONS:\n"
        f"{versions}\n"
        "\n"
        "TECHNICAL SPECIFICATIONS:\n"
        "- Generate complete HTML with embedded CSS and JavaScript in a single file\n"
        "- Use semantic HTML5 elements\n"
        "- Ensure cross-browser compatibility (Chrome, Firefox, Safari, Edge)\n"
        "- Add proper error handling for all interactive elements\n"
        "- Include detailed comments explaining the tracking functionality\n"
        "- Make sure all buttons and interactive elements work properly\n"
        "- Test that the Qualtrics redirect functions correctly\n"
        "\n"
        "IMPORTANT: The webpage should look and feel exactly like a real website/app, not like an obvious experiment. "
        "Users should have a natural, authentic experience that matches their expectations from the original website."
    )
    return prompt


def select_prompt(spec: ExperimentSpec) -> str:
    """Full experiment prompt when every required field was submitted, else the minimal one."""
    if spec.is_complete():
        return build_prompt(spec)
    return MINIMAL_PROMPT


def build_conversion_prompt(code: str) -> str:
    return (
        "Convert the following component code into one complete, standalone HTML document. "
        "Use only plain HTML, embedded CSS and vanilla JavaScript in a single file; no React, no JSX, "
        "no imports or build step. Keep the layout, styling, tracking logic and redirect behaviour identical. "
        "Start the output with <!DOCTYPE html> and return only the HTML, inside one ```html fenced block.\n"
        "\n"
        f"{code}"
    )
