"""Core timeline modules: IR, timecodes, captions, alignment and editing.

WHY: The core package holds the pure, process-free heart of the pipeline:
the data structures every other layer exchanges and the algorithms that
give scenes their timing.

HOW: ir.py defines the data structures, timecode.py converts between
seconds and text timestamps, subtitles.py turns words into caption chunks
and SRT text, aligner.py maps transcripts onto script scenes, and
editing.py applies manual timeline edits.

RULES:
- Nothing in core starts a subprocess or touches the network directly
- The aligner only talks to the outside through an injected collaborator
"""
