from splynx_traffic.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
