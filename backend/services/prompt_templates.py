"""Fixed instruction text sent with every generation request."""

SYSTEM_INSTRUCTION = """
You are Prompt Maker.
Input: several frames (images) taken from one video.
Output: VALID JSON matching the requested schema.
Do not use markdown. Do not use code fences.
If the video contains on-screen text, include it in the summary and the prompt.
""".strip()

OUTPUT_SCHEMA_HINT = """
Output JSON in exactly this format:
{
  "summary": "string",
  "prompt": "string",
  "negative_prompt": "string",
  "tags": ["string"],
  "notes": "string"
}
""".strip()

TEMPLATE_GUIDES: dict[str, str] = {
    "general": """
Template: General.
- Prompt: as universal as possible, usable for image or video models depending on the user's goal.
- Negative prompt: things to avoid.
- Tags: main keywords.
""".strip(),
    "sdxl": """
Template: SDXL (image generation).
- Prompt: detailed subject, environment, lighting, style, camera, composition.
- Negative prompt: artifacts, low quality, watermark, text, blur, deformed, extra limbs, etc.
- Tags: main keywords.
- Notes: optional parameter suggestions (steps, cfg, aspect ratio), kept in the notes field.
""".strip(),
    "midjourney": """
Template: Midjourney.
- Prompt: natural language with style cues.
- Notes: parameter recommendations such as --ar 16:9, --stylize 200, --quality 1 (write them in notes).
- Negative_prompt may list things to avoid (Midjourney has no official negative prompt, fill it anyway).
""".strip(),
    "video": """
Template: Video prompt (generative video).
- Prompt: describe the scene, subject, action, emotion, environment, time of day, lighting.
- Add camera movement (pan, dolly, handheld), lens, depth of field, pacing.
- Negative_prompt: flicker, jitter, morphing faces, text artifacts, watermark, etc.
- Notes: recommended duration, fps, aspect ratio.
""".strip(),
}


def template_guide(template: str) -> str:
    """Guidance block for a template name; anything unknown gets the general guide."""
    return TEMPLATE_GUIDES.get(template, TEMPLATE_GUIDES["general"])
