from elfrpath.cli import main

raise SystemExit(main())
