from bfscrawl.cli import main

raise SystemExit(main())
