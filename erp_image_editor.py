"""
Launch the image editor on one image.

Usage:
    python erp_image_editor.py <image-url-or-path>

The public URL of the saved edit is printed to stdout. Remote services are
configured from the environment (GEMINI_API_KEY, ERP_IMAGE_HOST, ...).
"""

import logging
import sys

from PyQt5.QtWidgets import QApplication

from ERP_Libs.ImageEditingLib.editor_controller import EditorController
from ERP_Libs.ImageEditingLib.image_editor_window import ImageEditorWindow
from ERP_Libs.RemoteLib import GeminiImageEditor, ImageHostClient, RemoteConfig


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)

    config = RemoteConfig.from_env()
    host = ImageHostClient(config)
    controller = EditorController(
        sys.argv[1],
        on_save=print,
        on_close=lambda: None,
        fetcher=host.fetch,
        uploader=host.upload,
        ai_editor=GeminiImageEditor(config, host.session),
    )

    app = QApplication(sys.argv)
    window = ImageEditorWindow(controller)
    window.start()
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
