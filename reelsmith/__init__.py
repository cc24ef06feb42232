"""Reelsmith: timeline alignment and slideshow video assembly.

WHY: A narrated short video is a voiceover, an ordered list of script
scenes, and one image per scene. Turning that into a finished vertical
video needs two pieces of real work: mapping the spoken words onto the
scenes (so each image is on screen while its sentence is spoken), and
driving FFmpeg to stitch images, audio and burned-in captions together.

HOW: Four layers, each independently testable:
  core: timeline IR, time formatting, subtitle chunking, alignment
  render: media inventory checks, concat plans, FFmpeg orchestration
  services: HTTP clients for transcription, LLM text and hashtags
  server: project store, pipeline coordinator, FastAPI routes

RULES:
- The Timeline IR is the contract between alignment and rendering
- All times are float seconds; SRT timestamps only appear in files
- Only the render layer starts external processes
"""

__version__ = "0.1.0"
