"""Fixed instruction templates filled from the form state."""

from __future__ import annotations

from modules.services.form_state import (
    Dimensions,
    LabelFields,
    Packaging,
    PackagingPreset,
    SuggestionField,
)

_BLEED_NOTE = (
    "- **Important for printing:** The background color, patterns, or textures must extend "
    "approximately 0.125 inches beyond the main content area on all sides to create a 'bleed'. "
    "Do not put any critical text or elements in this bleed area. The core design should be "
    "centered within the bleed."
)

_SIDE_PANELS = """\
**{left_no}. Left Panel (Side 1{exact}):**
- Create a section titled "INGREDIENTS" and list the following: "{ingredients}".
- Create a section titled "DIRECTIONS FOR USE" with the text: "{directions}".
- Format these sections with a clean, highly legible font{complement}.

**{right_no}. Right Panel (Side 2{exact}):**
- Create a section for company information: "{company_info}".
- Create a section titled "CAUTION" with the text: "{caution}".
- Include a standard, generic barcode placeholder.
- Include a standard recycling symbol."""

_REFINE_TEMPLATE = """\
You are an expert photo editor and graphic designer. The user has provided an image and a request for a change.

**User's Request:** "{request}"

Apply this change precisely while maintaining the overall quality and style of the original image."""

_PACKAGING_TEMPLATE = """\
Based on the provided product information, suggest the ideal packaging.
Product Name: "{product_name}"
Ingredients: "{ingredients}"
Aesthetic: "{aesthetic}"

Consider the product type implied by its name and ingredients (e.g., shampoo, serum, cream, supplement).
Suggest a suitable packaging preset, a finish, and typical dimensions (height and diameter in inches).

The available presets are: {presets}.

Return your response as a single JSON object with the keys "preset", "finish", "height", and "diameter".
- "preset" must be one of the provided options.
- "finish" should be a short descriptive string (e.g., "matte", "glossy", "satin").
- "height" and "diameter" must be numbers."""


def _side_panels(label: LabelFields, left_no: int, *, exact: bool) -> str:
    return _SIDE_PANELS.format(
        left_no=left_no,
        right_no=left_no + 1,
        exact=" - USE THIS EXACT TEXT" if exact else "",
        complement=" that complements the inspired style" if exact else "",
        ingredients=label.ingredients,
        directions=label.directions,
        company_info=label.company_info,
        caution=label.caution,
    )


def label_prompt(label: LabelFields, dimensions: Dimensions, has_logo: bool) -> str:
    """Initial label generation."""
    logo_line = (
        "\n- The user has provided their logo. Integrate it naturally into the design, "
        "usually at the top or top-center of this panel."
        if has_logo
        else ""
    )
    return "\n".join(
        [
            "You are a world-class graphic designer specializing in product labels. Your task is to "
            "create a stunning, print-quality, full wrap-around label design meant to be applied to a product.",
            "",
            "The label should be designed as a single flat rectangle, with three distinct panels arranged "
            "horizontally: Left Panel, Center Panel (the front), and Right Panel.",
            "",
            "**Instructions:**",
            "",
            "**1. Overall Style:**",
            f'- The brand name is "{label.brand_name}".',
            f'- The aesthetic must be "{label.aesthetic}" with a "{label.color_palette}" color palette.',
            f"- The label shape is {dimensions.shape.value}.",
            f"- The final output is a single rectangular image with an aspect ratio of approximately "
            f"{_num(dimensions.width)} wide to {_num(dimensions.height)} tall. This will be wrapped around "
            "the product. Maintain this aspect ratio.",
            _BLEED_NOTE,
            "",
            "**2. Center Panel (Front of Product):**",
            "- This is the main focus and should be the most visually appealing part.",
            f'- Feature the product name prominently: "{label.product_name}".',
            f'- Include the tagline: "{label.tagline}".',
            f'- Display the net weight: "{label.weight}".',
            f'- The brand name "{label.brand_name}" should also be clearly visible.{logo_line}',
            "",
            _side_panels(label, 3, exact=False),
            "",
            "**Layout Guidelines:**",
            "- Ensure clear but seamless visual separation between the panels. They should flow together as "
            "one cohesive design. Use subtle lines, color blocking, or spacing to delineate the sections.",
            "- Use professional typography throughout. Ensure all text is legible with high contrast against "
            "its background.",
            "- The output should be JUST the label image itself on a transparent or neutral background. "
            "Do not add any descriptive text outside the label design.",
        ]
    )


def style_conditioned_prompt(label: LabelFields, dimensions: Dimensions) -> str:
    """Label generation that borrows the style of an uploaded reference image."""
    return "\n".join(
        [
            "You are a world-class graphic designer specializing in product labels. Your task is to create "
            "a stunning, print-quality, full wrap-around label.",
            "",
            "You have been given an image of an existing label to use as **style inspiration**.",
            "",
            "**Instructions:**",
            "",
            "**1. Analyze Style (From Provided Image):**",
            "- First, deeply analyze the provided image. Identify its core aesthetic, color palette, "
            "typography style (e.g., serif, sans-serif, script), layout principles, and overall mood "
            "(e.g., luxurious, minimalist, rustic).",
            "",
            "**2. Create a New Label (Using Inspired Style and New Content):**",
            "- Now, using the style you just analyzed as your inspiration, create a **completely new** label design.",
            "- This new label must be a single flat rectangle, with three distinct panels arranged horizontally: "
            "Left Panel, Center Panel (the front), and Right Panel.",
            f"- The final output is a single rectangular image with an aspect ratio of approximately "
            f"{_num(dimensions.width)} wide to {_num(dimensions.height)} tall. Maintain this aspect ratio.",
            _BLEED_NOTE,
            "",
            "**3. Center Panel (Front of Product - USE THIS EXACT TEXT):**",
            "- This is the main focus. Apply the inspired style here.",
            f'- Feature the product name prominently: "{label.product_name}".',
            f'- Include the tagline: "{label.tagline}".',
            f'- Display the net weight: "{label.weight}".',
            f'- The brand name "{label.brand_name}" should also be clearly visible.',
            "",
            _side_panels(label, 4, exact=True),
            "",
            "**Layout Guidelines:**",
            "- Ensure clear but seamless visual separation between the panels. They should flow together.",
            "- The output should be JUST the label image itself on a transparent or neutral background. "
            "Do not add any descriptive text or your analysis outside the label design.",
        ]
    )


def palette_swatch_prompt(label: LabelFields) -> str:
    return f"A simple solid color block representing a {label.color_palette} color palette for a product label."


def mockup_front_prompt(packaging: Packaging) -> str:
    """Front render of the container wearing the flat label."""
    steps = [
        "You have been provided with a **full wrap-around label** image. The center of the image is the "
        "front of the label.",
        f"Apply this entire label realistically onto a container. {_container(packaging)}",
        f"The container is approximately {_num(packaging.height)} inches tall and "
        f"{_num(packaging.diameter)} inches in diameter.",
    ]
    placement = packaging.placement
    if not placement.is_default:
        steps.append(
            "**Label Placement:**\n"
            f"    - Apply the label with a horizontal (X-axis) offset of approximately {_num(placement.offset_x)}% "
            "from the dead center of the container's front face. A negative value shifts it left, a positive "
            "value shifts it right.\n"
            f"    - Apply the label with a vertical (Y-axis) offset of approximately {_num(placement.offset_y)}% "
            "from the vertical center of the container's front face. A negative value shifts it down, a "
            "positive value shifts it up.\n"
            f"    - Rotate the label by {_num(placement.rotation)} degrees. A positive value indicates clockwise rotation."
        )
    steps.extend(
        [
            "The view should be of the **front** of the product, so the center panel of the label is clearly "
            "visible. You should also see parts of the side panels wrapping around the curve of the container.",
            "Render the final product on a clean, neutral background (like a marble countertop or a simple "
            "studio setting).",
            "The lighting should be soft and professional, creating realistic highlights and shadows.",
            "Ensure the label wraps correctly and seamlessly around the surface, showing proper perspective "
            "and texture.",
        ]
    )
    return _numbered(
        "You are a photorealistic 3D rendering artist. Your task is to create a product mockup.",
        steps,
    )


def mockup_back_with_context_prompt(packaging: Packaging) -> str:
    """Back render that must match an existing front render."""
    return _numbered(
        "You are a photorealistic 3D rendering artist tasked with creating a consistent 360-degree product view.",
        [
            "You have been provided with an image of the **front view** of a product mockup which has a "
            "wrap-around label.",
            "Your task is to generate the **back view** of the *exact same product*.",
            "**Crucially, you must perfectly match ALL visual characteristics from the provided front view image:**\n"
            f"    - **Container:** The shape, size, preset description ('{packaging.preset.value}'), and finish "
            f"('{packaging.finish}') must be identical.\n"
            "    - **Lighting:** Replicate the lighting setup, including the direction, softness, and color. "
            "Shadows and highlights must be consistent.\n"
            "    - **Background:** The background environment (e.g., marble countertop, studio setting) must be the same.\n"
            "    - **Camera Angle:** Maintain a consistent camera angle and perspective, simply rotated to view the back.",
            "Since the label wraps around, the back view should show the continuation of the label design. The "
            "left and right panels of the original flat label design would meet at the back. Do not show the "
            "front (center panel) of the label.",
            "The final output must be just the image of the back of the product.",
        ],
    )


def mockup_back_prompt(packaging: Packaging) -> str:
    """Back render straight from the flat label."""
    return _numbered(
        "You are a photorealistic 3D rendering artist. Your task is to create a mockup of the back of a product.",
        [
            "The provided image is a **full wrap-around label**. You are to render the **back view** of the product.",
            f'Create a container that is a photorealistic "{packaging.preset.value}" with a "{packaging.finish}" '
            f"finish. The dimensions are approximately {_num(packaging.height)} inches tall and "
            f"{_num(packaging.diameter)} inches in diameter.",
            "Apply the label to the container, but show the view from the back. The back is where the edges of "
            "the flat label image would meet. You should see the content from the left and right panels of the "
            "label image. Do not show the front (center panel) of the label.",
            "Render the product on a clean, neutral background (like a marble countertop or a simple studio setting).",
            "The lighting should be soft and professional, creating realistic highlights and shadows.",
        ],
    )


def refine_prompt(request: str) -> str:
    return _REFINE_TEMPLATE.format(request=request.strip())


def suggestion_prompt(target: SuggestionField, label: LabelFields) -> str:
    """Ask for five candidate values for one label field."""
    if target is SuggestionField.TAGLINE:
        prompt = (
            f'Based on the product name "{label.product_name}", its aesthetic "{label.aesthetic}", and '
            f'ingredients like "{label.ingredients}", generate 5 creative and concise taglines.'
        )
    elif target is SuggestionField.PRODUCT_NAME:
        prompt = (
            f'Based on the brand name "{label.brand_name}", its aesthetic "{label.aesthetic}", and '
            f'ingredients like "{label.ingredients}", generate 5 creative and appealing product names.'
        )
    elif target is SuggestionField.AESTHETIC:
        prompt = (
            f'Based on the product name "{label.product_name}", brand name "{label.brand_name}", and '
            f'ingredients like "{label.ingredients}", generate 5 descriptive aesthetic styles for a product '
            'label. Examples: "minimalist and clean", "vintage botanical illustration", "bold and modern geometric".'
        )
    else:
        prompt = (
            f'Based on the product name "{label.product_name}", ingredients "{label.ingredients}", and the '
            f'aesthetic "{label.aesthetic}", generate 5 compelling color palette descriptions for a product '
            'label. Examples: "earthy tones of terracotta and sage", "a pastel palette of soft pink and mint '
            'green", "a vibrant combination of electric blue and citrus yellow".'
        )
    return prompt + " Return the response as a JSON array of strings."


def packaging_prompt(label: LabelFields) -> str:
    presets = ", ".join(f'"{preset.value}"' for preset in PackagingPreset)
    return _PACKAGING_TEMPLATE.format(
        product_name=label.product_name,
        ingredients=label.ingredients,
        aesthetic=label.aesthetic,
        presets=presets,
    )


# Internal helpers ---------------------------------------------------------
def _container(packaging: Packaging) -> str:
    return (
        f'The container to render is a photorealistic "{packaging.preset.value}". '
        f'The specified finish is "{packaging.finish}".'
    )


def _numbered(intro: str, steps: list[str]) -> str:
    lines = [intro, "", "**Instructions:**"]
    lines.extend(f"{index}. {step}" for index, step in enumerate(steps, start=1))
    return "\n".join(lines)


def _num(value: float) -> str:
    """Render 8.0 as "8" and 3.5 as "3.5"."""
    return f"{value:g}"
