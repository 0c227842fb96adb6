"""UI strings for the supported languages."""

TRANSLATIONS = {
    "en": {
        "title": "PrivacyBlur",
        "open": "Open...",
        "paste": "Paste",
        "tool_move": "Move",
        "tool_blur": "Blur",
        "tool_pixelate": "Pixelate",
        "tool_block": "Block",
        "tool_text": "Text",
        "slider_blur": "Blur radius",
        "slider_pixel": "Pixel size",
        "color": "Color",
        "undo": "Undo",
        "delete": "Delete",
        "edit": "Edit",
        "clear_all": "Clear all",
        "auto_detect": "Auto-detect",
        "scanning": "Scanning...",
        "copy": "Copy",
        "copied_toast": "Copied to clipboard",
        "copy_failed": "Could not copy to clipboard",
        "export": "Export",
        "enter_text": "Enter text",
        "edit_text": "Edit text",
        "font_size": "Font size",
        "background": "Background",
        "ok": "OK",
        "cancel": "Cancel",
        "prev_page": "< Prev",
        "next_page": "Next >",
        "no_document": "Open or paste an image or PDF",
        "load_failed": "Could not open this file",
        "detected": "Blurred {count} region(s)",
        "saved": "Saved to {path}",
        "language": "中文",
    },
    "zh": {
        "title": "隐私打码",
        "open": "打开...",
        "paste": "粘贴",
        "tool_move": "移动",
        "tool_blur": "模糊",
        "tool_pixelate": "马赛克",
        "tool_block": "色块",
        "tool_text": "文字",
        "slider_blur": "模糊半径",
        "slider_pixel": "像素大小",
        "color": "颜色",
        "undo": "撤销",
        "delete": "删除",
        "edit": "编辑",
        "clear_all": "全部清除",
        "auto_detect": "自动识别",
        "scanning": "识别中...",
        "copy": "复制",
        "copied_toast": "已复制到剪贴板",
        "copy_failed": "无法复制到剪贴板",
        "export": "导出",
        "enter_text": "输入文字",
        "edit_text": "编辑文字",
        "font_size": "字号",
        "background": "背景色",
        "ok": "确定",
        "cancel": "取消",
        "prev_page": "< 上一页",
        "next_page": "下一页 >",
        "no_document": "打开或粘贴一张图片或 PDF",
        "load_failed": "无法打开此文件",
        "detected": "已模糊 {count} 处",
        "saved": "已保存到 {path}",
        "language": "English",
    },
}


def tr(lang: str, key: str, **kwargs) -> str:
    """Translated string for ``key``, falling back to English, then the key itself."""
    text = TRANSLATIONS.get(lang, {}).get(key) or TRANSLATIONS["en"].get(key, key)
    return text.format(**kwargs) if kwargs else text
