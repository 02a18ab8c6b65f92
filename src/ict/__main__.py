from ict.cli import main

raise SystemExit(main())
