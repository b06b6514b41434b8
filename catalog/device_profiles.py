"""Default device profiles for web captures."""

DEFAULT_DEVICE_PROFILES = [
    {
        "programmatic_name": "desktop_1440",
        "display_name": "Desktop (1440x900)",
        "viewport_width": 1440,
        "viewport_height": 900,
        "device_pixel_ratio": 1.0,
        "is_mobile": False,
        "sort_order": 10,
    },
    {
        "programmatic_name": "desktop_1920",
        "display_name": "Full HD (1920x1080)",
        "viewport_width": 1920,
        "viewport_height": 1080,
        "device_pixel_ratio": 1.0,
        "is_mobile": False,
        "sort_order": 20,
    },
    {
        "programmatic_name": "tablet_portrait",
        "display_name": "Tablet portrait (768x1024)",
        "viewport_width": 768,
        "viewport_height": 1024,
        "device_pixel_ratio": 2.0,
        "is_mobile": True,
        "sort_order": 30,
        "user_agent": (
            "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
        ),
    },
    {
        "programmatic_name": "mobile_390",
        "display_name": "Mobile (390x844)",
        "viewport_width": 390,
        "viewport_height": 844,
        "device_pixel_ratio": 3.0,
        "is_mobile": True,
        "sort_order": 40,
        "user_agent": (
            "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
        ),
    },
]
