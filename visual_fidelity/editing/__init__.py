"""Candidate generators for the editable region."""

from .interface import EditRequest, EditResult, Editor
from .inpaint_editor import InpaintEditor, mask_for_inpainting

__all__ = ["EditRequest", "EditResult", "Editor", "InpaintEditor", "mask_for_inpainting"]
