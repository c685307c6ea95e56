from log_structure.cli import main

raise SystemExit(main())
