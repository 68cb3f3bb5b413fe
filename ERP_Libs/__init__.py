"""
ERP_Libs - Listing Image Editor Library Modules

This package contains the image editing core of the listing management tool,
organized into specialized sub-packages:

- ImageEditingLib: Surfaces, inpainting, vector objects, history and the editor controller
- RemoteLib: Collaborators that talk to remote services (AI image edit, upload, source fetch)
"""

__version__ = "0.1.0"
