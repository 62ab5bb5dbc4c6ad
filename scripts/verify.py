import argparse
from pathlib import Path

from PIL import Image

from imgconv.pipeline import TranscodeRequest, load_config, plan_geometry, process_image


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("input", type=Path)
    parser.add_argument("output", type=Path, nargs="?")
    parser.add_argument("--resize", choices=["fit", "crop"])
    parser.add_argument("--width", type=int)
    parser.add_argument("--height", type=int)
    parser.add_argument("--zoom", type=float)
    parser.add_argument("--fx", type=float)
    parser.add_argument("--fy", type=float)
    parser.add_argument("--plan-only", action="store_true")
    args = parser.parse_args()
    if args.output is None and not args.plan_only:
        parser.error("output is required unless --plan-only is given")

    config = load_config()
    request = TranscodeRequest(
        resize=args.resize,
        w=args.width,
        h=args.height,
        zoom=args.zoom,
        fx=args.fx,
        fy=args.fy,
    )

    image = Image.open(args.input)
    if args.plan_only:
        resized, crop_rect = plan_geometry(image.size, request, config)
        print(f"resize {resized.w}x{resized.h}, crop {crop_rect.as_pil_box()}")
        return
    result = process_image(image, request, config)
    result.save(args.output, format="PNG")


if __name__ == "__main__":
    main()
