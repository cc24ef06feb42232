"""Render layer: input checks, scratch-file plans and ffmpeg driving.

HOW: inventory.py validates media before anything runs, plan.py writes
the concat manifest and SRT for one render, ffmpeg.py runs the external
processes, orchestrator.py composes them into render_video(), and
thumbnail.py grabs a preview frame from the result.
"""
