from cladeannotator.cli import main

raise SystemExit(main())
